#!/usr/bin/env python3
"""
Async HTTP transport for provider REST calls.
Wraps an aiohttp session and returns uniform response objects with timing metadata.
"""

import asyncio
import aiohttp
import json
import re
import time
from typing import Dict, Any, Optional, Union, List
from dataclasses import dataclass, field

from .logging import get_logger

logger = get_logger(__name__)

_TOKEN_PATTERN = re.compile(r"(token=)[^&\s'\")]*")


@dataclass
class HTTPClientConfig:
    """Configuration for the HTTP client."""
    timeout: float = 30.0
    connect_timeout: float = 10.0
    max_redirects: int = 10
    max_concurrent_requests: int = 50

    enable_request_logging: bool = True

    default_headers: Dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True


@dataclass
class HTTPResponse:
    """HTTP response wrapper with additional metadata."""
    status: int
    headers: Dict[str, str]
    body: Union[str, bytes, dict, list, None]
    url: str
    method: str
    elapsed_time: float


def redact_token(text: str) -> str:
    """Mask the value of any ``token=`` query parameter."""
    return _TOKEN_PATTERN.sub(r"\1***", text)


class HTTPClient:
    """Thin aiohttp client; every status >= 400 is raised as ClientResponseError."""

    def __init__(self, name: str, config: Optional[HTTPClientConfig] = None):
        self.name = name
        self.config = config or HTTPClientConfig()
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Initialize HTTP session."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(
                total=self.config.timeout,
                connect=self.config.connect_timeout,
                sock_read=self.config.timeout
            )
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=self.config.default_headers,
                connector=aiohttp.TCPConnector(
                    ssl=self.config.verify_ssl,
                    limit=self.config.max_concurrent_requests,
                )
            )
            logger.info("HTTP client initialized", client=self.name)

    async def close(self):
        """Close HTTP session and cleanup resources."""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("HTTP client closed", client=self.name)

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        """Make GET request.

        URLs are logged with the token parameter masked.
        """
        if not self.session:
            await self.start()

        request_headers = {**self.config.default_headers}
        if headers:
            request_headers.update(headers)

        log_url = redact_token(url)
        if self.config.enable_request_logging:
            logger.debug("HTTP GET", http_url=log_url, client_name=self.name)

        start_time = time.time()
        try:
            async with self.session.request(
                "GET",
                url,
                params=_clean_params(params),
                headers=request_headers,
                max_redirects=self.config.max_redirects,
            ) as response:
                body = await _read_body(response)
                elapsed_time = time.time() - start_time

                if self.config.enable_request_logging:
                    logger.debug(
                        "HTTP GET completed",
                        http_url=log_url,
                        status=response.status,
                        elapsed=round(elapsed_time, 3),
                    )

                if response.status >= 400:
                    raise aiohttp.ClientResponseError(
                        request_info=response.request_info,
                        history=response.history,
                        status=response.status,
                        message=f"HTTP error: {response.status}"
                    )

                return HTTPResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    body=body,
                    url=redact_token(str(response.url)),
                    method="GET",
                    elapsed_time=elapsed_time,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "HTTP GET failed",
                http_url=log_url,
                error=redact_token(str(e)),
                elapsed=round(time.time() - start_time, 3),
            )
            raise


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[List[tuple]]:
    """Drop unset values; aiohttp rejects None in query strings."""
    if params is None:
        return None
    return [(key, str(value)) for key, value in params.items() if value is not None]


async def _read_body(response: aiohttp.ClientResponse) -> Union[str, bytes, dict, list]:
    content_type = response.headers.get('content-type', '').lower()
    if 'application/json' in content_type:
        try:
            return await response.json()
        except (json.JSONDecodeError, aiohttp.ContentTypeError):
            return await response.text()
    if 'text/' in content_type:
        return await response.text()
    return await response.read()
