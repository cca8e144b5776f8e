#!/usr/bin/env python3
"""
Finnhub data source entry point.

Receives a batch of host targets sharing a time range and answers either with
one resolved response (REST kinds) or with a live merged feed (quote-stream).
"""

import uuid
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Union

from .config import FinnhubSettings, Settings, get_settings
from .dispatcher import RequestDispatcher
from .exceptions import ConfigError, ProviderRequestError
from .http_client import HTTPClient, HTTPClientConfig
from .logging import clear_query_context, get_logger, set_query_context, setup_logging
from .models import QueryKind, QueryRequest, QueryResponse, StreamUpdate, parse_target
from .streaming import ConnectFactory, StreamingSessionManager

logger = get_logger(__name__)


class FinnhubDataSource:
    """Routes query batches to the REST pipeline or to trade streaming."""

    def __init__(
        self,
        settings: Optional[FinnhubSettings] = None,
        http_client: Optional[HTTPClient] = None,
        connect: Optional[ConnectFactory] = None,
        name: str = "finnhub",
    ):
        self.settings = settings or get_settings().finnhub
        if not self.settings.api_token:
            raise ConfigError("Finnhub API token is not configured", setting="FINNHUB_API_TOKEN")
        self.name = name
        self.http_client = http_client or HTTPClient(
            name, HTTPClientConfig(timeout=self.settings.request_timeout)
        )
        self.dispatcher = RequestDispatcher(self.settings, self.http_client)
        self.streams = StreamingSessionManager(self.settings, connect=connect)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Tear down live subscriptions and the HTTP session."""
        await self.streams.close_all()
        await self.http_client.close()

    async def close_sockets(self) -> None:
        await self.streams.close_all()

    async def query(
        self, request: Union[QueryRequest, Mapping[str, Any]]
    ) -> Union[QueryResponse, AsyncIterator[StreamUpdate]]:
        """Answer one batch.

        Every connection from earlier batches is closed first. The batch streams
        when its first target is a quote-stream target; the kind of later
        targets is not consulted for that decision.
        """
        await self.close_sockets()
        if not isinstance(request, QueryRequest):
            request = QueryRequest.model_validate(request)

        targets = [parse_target(raw) for raw in request.targets]
        if not targets:
            return QueryResponse()

        if targets[0].kind == QueryKind.QUOTE_STREAM.value:
            logger.info("Streaming batch", targets=len(targets))
            return self.streams.stream(targets)

        set_query_context(uuid.uuid4().hex)
        try:
            data = await self.dispatcher.dispatch(targets, request.range)
        finally:
            clear_query_context()
        return QueryResponse(data=data)

    async def test_datasource(self) -> Dict[str, str]:
        """Probe the provider with a known profile lookup."""
        try:
            response = await self.dispatcher.fetch(
                QueryKind.PROFILE.value, {"symbol": self.settings.probe_symbol}
            )
        except ProviderRequestError as e:
            logger.warning("Connectivity check failed", error=str(e))
            return {"status": "error", "message": e.message}
        if response.status == 200:
            return {"status": "success"}
        return {"status": "error", "message": f"Unexpected status {response.status}"}


def create_datasource(settings: Optional[Settings] = None, **kwargs: Any) -> FinnhubDataSource:
    """Configure logging from application settings and build a data source.

    Hosts embedding the package call this once at startup; constructing
    ``FinnhubDataSource`` directly leaves logging configuration to the caller.
    """
    settings = settings or get_settings()
    setup_logging(
        log_level=settings.log_level,
        service_name=settings.service_name,
        environment=settings.environment,
        json_logs=settings.json_logs,
    )
    for issue in settings.validate_config():
        logger.warning("Configuration issue", issue=issue)
    return FinnhubDataSource(settings.finnhub, **kwargs)
