#!/usr/bin/env python3
"""Setup script for the Finnhub data source library."""

from setuptools import setup, find_packages

setup(
    name="finnhub-datasource",
    version="1.0.0.dev0",
    packages=find_packages(include=["finnhub_datasource", "finnhub_datasource.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "structlog>=23.2.0",
        "aiohttp>=3.9.0",
        "websockets>=12.0",
        "prometheus-client>=0.19.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
)
