#!/usr/bin/env python3
"""
Streaming session management for trade ticks.

Each streaming target gets its own websocket subscription with a rolling
sample buffer. Subscriptions of one batch are merged into a single async
feed whose updates are keyed by the owning target's refId.
"""

import asyncio
import json
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from .config import FinnhubSettings
from .exceptions import StreamError
from .logging import get_logger
from .metrics import stream_connections_gauge, stream_errors_counter, stream_messages_counter
from .models import RollingBuffer, StreamFrame, StreamUpdate, TargetQuery, TradeTick

logger = get_logger(__name__)

GOING_AWAY = 1001

ConnectFactory = Callable[[str], Awaitable[Any]]

_COMPLETED = object()


def default_connect(url: str) -> Awaitable[Any]:
    return websockets.connect(url, ping_interval=20)


class SubscriptionState(str, Enum):
    """Lifecycle of one streaming subscription."""
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RECEIVING = "receiving"
    CLOSED = "closed"


class Subscription:
    """One websocket connection, one rolling buffer, one symbol."""

    def __init__(
        self,
        target: TargetQuery,
        url: str,
        connect: ConnectFactory,
        capacity: int = 1000,
        close_code: int = GOING_AWAY,
    ):
        self.ref_id = target.ref_id
        self.symbol = target.symbol
        self.url = url
        self.buffer = RollingBuffer(capacity)
        self.state = SubscriptionState.CONNECTING
        self.connection: Optional[Any] = None
        self._connect = connect
        self._close_code = close_code
        self._closing = False

    @property
    def closed(self) -> bool:
        return self.state == SubscriptionState.CLOSED

    def handle_message(self, raw: Any) -> Optional[StreamUpdate]:
        """Decode one inbound message; only trades produce an update."""
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            stream_errors_counter.labels(error_type="decode").inc()
            logger.error("Dropping undecodable stream message", ref_id=self.ref_id, error=str(e))
            return None

        if not isinstance(message, dict):
            return None
        message_type = message.get("type")
        stream_messages_counter.labels(type=message_type or "unknown").inc()
        if message_type != "trade":
            return None

        try:
            tick = TradeTick.model_validate(message["data"][0])
        except (KeyError, IndexError, TypeError, ValidationError) as e:
            stream_errors_counter.labels(error_type="malformed_trade").inc()
            logger.error("Dropping malformed trade message", ref_id=self.ref_id, error=str(e))
            return None

        self.buffer.add(ts=tick.t, value=tick.p)
        frame = StreamFrame(ref_id=self.ref_id, samples=self.buffer.snapshot())
        return StreamUpdate(key=self.ref_id, data=[frame])

    async def run(self, emit: Callable[[StreamUpdate], None]) -> None:
        """Connect, subscribe and forward trade updates until the connection closes.

        Transport errors end the subscription the same way a close does.
        """
        opened = False
        try:
            try:
                self.connection = await self._connect(self.url)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                raise StreamError(f"Connection failed: {e}", ref_id=self.ref_id, symbol=self.symbol) from e
            opened = True
            stream_connections_gauge.inc()

            if self._closing:
                await self.connection.close(code=self._close_code)
                return

            await self.connection.send(json.dumps({"type": "subscribe", "symbol": self.symbol}))
            self.state = SubscriptionState.SUBSCRIBED
            logger.info("Subscribed to trades", ref_id=self.ref_id, symbol=self.symbol)

            async for raw in self.connection:
                self.state = SubscriptionState.RECEIVING
                update = self.handle_message(raw)
                if update is not None:
                    emit(update)
        except ConnectionClosedOK:
            pass
        except (ConnectionClosed, OSError) as e:
            stream_errors_counter.labels(error_type=type(e).__name__).inc()
            logger.error("WebSocket error", ref_id=self.ref_id, symbol=self.symbol, error=str(e))
        except StreamError as e:
            stream_errors_counter.labels(error_type="connect").inc()
            logger.error("WebSocket error", **e.context, error=e.message)
        finally:
            if opened:
                stream_connections_gauge.dec()
                if not self._closing and self.connection is not None:
                    await self._close_connection()
            self.state = SubscriptionState.CLOSED
            logger.info("Subscription closed", ref_id=self.ref_id, symbol=self.symbol)

    async def close(self) -> None:
        """Close the transport with a going-away code; ``run`` then completes."""
        self._closing = True
        if self.connection is not None:
            await self._close_connection()

    async def _close_connection(self) -> None:
        try:
            await self.connection.close(code=self._close_code)
        except (OSError, WebSocketException) as e:
            logger.warning("Error closing connection", ref_id=self.ref_id, error=str(e))


class StreamingSessionManager:
    """Owns the live subscriptions of one data source instance."""

    def __init__(self, settings: FinnhubSettings, connect: Optional[ConnectFactory] = None):
        self.settings = settings
        self._connect = connect or default_connect
        self._subscriptions: List[Subscription] = []

    @property
    def live_subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    async def close_all(self) -> None:
        """Close every subscription opened by earlier batches."""
        subscriptions, self._subscriptions = self._subscriptions, []
        if subscriptions:
            logger.info("Closing streaming connections", count=len(subscriptions))
        for subscription in subscriptions:
            await subscription.close()

    def _open(self, target: TargetQuery) -> Subscription:
        subscription = Subscription(
            target,
            url=self.settings.stream_url,
            connect=self._connect,
            capacity=self.settings.stream_buffer_capacity,
            close_code=self.settings.stream_close_code,
        )
        self._subscriptions.append(subscription)
        return subscription

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def _run(self, subscription: Subscription, queue: asyncio.Queue) -> None:
        try:
            await subscription.run(queue.put_nowait)
        finally:
            self._discard(subscription)
            queue.put_nowait(_COMPLETED)

    async def stream(self, targets: Sequence[TargetQuery]) -> AsyncIterator[StreamUpdate]:
        """Merged feed of every target's updates, in arrival order.

        The feed ends once every subscription has closed.
        """
        queue: asyncio.Queue = asyncio.Queue()
        subscriptions = [self._open(target) for target in targets]
        tasks = [asyncio.create_task(self._run(sub, queue)) for sub in subscriptions]
        pending = len(tasks)
        try:
            while pending:
                item = await queue.get()
                if item is _COMPLETED:
                    pending -= 1
                    continue
                yield item
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
