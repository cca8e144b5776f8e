"""
Request dispatch for non-streaming targets.
Issues constructed or free-text REST requests concurrently and normalizes the results.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence, Union

import aiohttp

from .config import FinnhubSettings
from .exceptions import ProviderRequestError
from .http_client import HTTPClient, HTTPResponse, redact_token
from .logging import get_logger
from .metrics import request_duration_histogram, requests_counter
from .models import QueryKind, Table, TargetQuery, TimeRange, TimeSeries
from .normalizer import normalize
from .query_builder import build

logger = get_logger(__name__)

FREE_TEXT_METRIC_LABEL = "free-text"


class RequestDispatcher:
    """Routes each REST target through builder, transport and normalizer."""

    def __init__(self, settings: FinnhubSettings, http_client: HTTPClient):
        self.settings = settings
        self.http_client = http_client

    def resource_url(self, kind: str) -> str:
        """Quote lives at the API root; every other kind under ``/stock``."""
        prefix = "" if kind == QueryKind.QUOTE.value else "/stock"
        return f"{self.settings.base_url}{prefix}/{kind}"

    async def fetch(self, kind: str, params: Optional[Dict[str, Any]] = None) -> HTTPResponse:
        """GET a typed resource with the auth token appended.

        Raises:
            ProviderRequestError: transport failure or non-success status.
        """
        query = {key: value for key, value in (params or {}).items() if key != "refId"}
        query["token"] = self.settings.api_token
        start = time.time()
        try:
            response = await self.http_client.get(self.resource_url(kind), params=query)
        except aiohttp.ClientResponseError as e:
            requests_counter.labels(kind=kind, status=str(e.status)).inc()
            logger.error("Error retrieving data", kind=kind, symbol=query.get("symbol"), status=e.status)
            raise ProviderRequestError(
                f"Provider returned HTTP {e.status}", kind=kind, status=e.status, symbol=query.get("symbol")
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            requests_counter.labels(kind=kind, status="error").inc()
            logger.error("Error retrieving data", kind=kind, symbol=query.get("symbol"), error=redact_token(str(e)))
            raise ProviderRequestError(
                f"Provider request failed: {redact_token(str(e))}", kind=kind, symbol=query.get("symbol")
            ) from e
        finally:
            request_duration_histogram.labels(kind=kind).observe(time.time() - start)

        requests_counter.labels(kind=kind, status=str(response.status)).inc()
        return response

    async def free_text_query(self, query: str) -> Any:
        """Pass a raw query through to the provider.

        Failures are logged and yield ``None``, which normalizes to an empty table.
        """
        url = f"{self.settings.base_url}/{query.lstrip('/')}&token={self.settings.api_token}"
        try:
            response = await self.http_client.get(url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            requests_counter.labels(kind=FREE_TEXT_METRIC_LABEL, status="error").inc()
            logger.error("Error retrieving data", query=query, error=redact_token(str(e)))
            return None
        requests_counter.labels(kind=FREE_TEXT_METRIC_LABEL, status=str(response.status)).inc()
        return response.body

    async def dispatch_target(
        self, target: TargetQuery, time_range: TimeRange
    ) -> Union[Table, List[TimeSeries]]:
        if target.free_text:
            payload = await self.free_text_query(target.query_text)
        else:
            response = await self.fetch(target.kind, build(target, time_range))
            payload = response.body
        return normalize(payload, target.kind, free_text=target.free_text)

    async def dispatch(
        self, targets: Sequence[TargetQuery], time_range: TimeRange
    ) -> List[Union[Table, TimeSeries]]:
        """Run every target concurrently and flatten results in target order.

        A structured request failure fails the whole batch.
        """
        results = await asyncio.gather(
            *(self.dispatch_target(target, time_range) for target in targets)
        )
        flattened: List[Union[Table, TimeSeries]] = []
        for result in results:
            if isinstance(result, list):
                flattened.extend(result)
            else:
                flattened.append(result)
        logger.debug("Dispatched batch", targets=len(targets), outputs=len(flattened))
        return flattened
