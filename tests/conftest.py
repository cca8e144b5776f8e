#!/usr/bin/env python3
"""
Shared pytest fixtures: settings, a scripted HTTP client and fake websocket connections.
"""

import asyncio
import pytest
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple
from unittest.mock import AsyncMock, MagicMock

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from finnhub_datasource.config import FinnhubSettings
from finnhub_datasource.http_client import HTTPClient, HTTPResponse
from finnhub_datasource.models import TimeRange

_CLOSED = object()


class FakeConnection:
    """In-memory websocket connection: push() feeds messages, close() ends iteration."""

    def __init__(self, index: int, url: str, events: List[Tuple[str, int]]):
        self.index = index
        self.url = url
        self.events = events
        self.sent: List[str] = []
        self.close_codes: List[int] = []
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        if not self.close_codes:
            self.events.append(("close", self.index))
            self._inbox.put_nowait(_CLOSED)
        self.close_codes.append(code)

    def push(self, message: Any) -> None:
        self._inbox.put_nowait(message)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Connect factory recording open/close ordering across connections."""

    def __init__(self):
        self.connections: List[FakeConnection] = []
        self.events: List[Tuple[str, int]] = []

    async def __call__(self, url: str) -> FakeConnection:
        connection = FakeConnection(len(self.connections), url, self.events)
        self.events.append(("open", connection.index))
        self.connections.append(connection)
        return connection

    async def wait_for(self, count: int) -> None:
        """Yield to the loop until ``count`` connections have been opened."""
        for _ in range(200):
            if len(self.connections) >= count and all(c.sent for c in self.connections[:count]):
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} connections, got {len(self.connections)}")


def make_response(body: Any, status: int = 200, url: str = "") -> HTTPResponse:
    return HTTPResponse(
        status=status,
        headers={"content-type": "application/json"},
        body=body,
        url=url,
        method="GET",
        elapsed_time=0.01,
    )


@pytest.fixture
def finnhub_settings():
    """Provide test configuration settings."""
    return FinnhubSettings(
        api_token="test-token",
        base_url="https://finnhub.test/api/v1",
        websocket_url="wss://ws.finnhub.test",
    )


@pytest.fixture
def time_range():
    return TimeRange(
        start=datetime(2023, 7, 1, tzinfo=timezone.utc),
        end=datetime(2023, 7, 22, tzinfo=timezone.utc),
    )


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def provider_payloads() -> Dict[str, Any]:
    """Provider payloads keyed by REST path suffix."""
    return {
        "/stock/profile": {"country": "US", "name": "Apple Inc", "marketCapitalization": 2800000},
        "/stock/candle": {"t": [100, 200], "o": [10, 11], "c": [12, 13], "h": [14, 15], "s": "ok"},
        "/quote": {"c": 250.5, "h": 251.0, "l": 249.0, "t": 1690000000},
        "/stock/earnings": [
            {"period": "2020-01-01", "symbol": "AAPL", "actual": 1.1, "estimate": 1.0},
            {"period": "2020-04-01", "symbol": "AAPL", "actual": 1.3, "estimate": 1.2},
        ],
        "/stock/metric": {
            "metric": {"52WeekHigh": 198.2, "beta": 1.29},
            "metricType": "all",
            "symbol": "AAPL",
        },
    }


@pytest.fixture
def mock_http_client(provider_payloads):
    """HTTP client double answering from provider_payloads by URL suffix."""

    async def fake_get(url, params=None, headers=None):
        for suffix, body in provider_payloads.items():
            if url.endswith(suffix):
                return make_response(body, url=url)
        return make_response({}, url=url)

    client = MagicMock(spec=HTTPClient)
    client.get = AsyncMock(side_effect=fake_get)
    client.close = AsyncMock()
    return client


@pytest.fixture
def response_factory():
    return make_response
