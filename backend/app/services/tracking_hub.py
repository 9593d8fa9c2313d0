"""
Location Broadcast Hub.

In-memory publish/subscribe registry mapping transport request ids to the
WebSocket connections watching them. One hub is created per application in
the lifespan and stored on ``app.state.tracking_hub``.

Delivery is best-effort and at-most-once: a connection whose send fails or
does not finish within the send timeout is dropped from every subscription.
Durable history lives in the gps_tracking table; clients that miss updates
poll the REST endpoints.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Set

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """Anything with an async send_json, e.g. starlette's WebSocket."""

    async def send_json(self, data: Any) -> None:
        ...


class LocationBroadcastHub:
    """
    Registry of (connection, request id) subscriptions.

    Connections are keyed by id() because starlette WebSockets are not
    hashable. The registry is guarded by an asyncio.Lock; sends happen
    outside it.
    """

    def __init__(self, send_timeout: Optional[float] = None):
        if send_timeout is None:
            send_timeout = settings.tracking_send_timeout_seconds
        self._send_timeout = send_timeout
        self._lock = asyncio.Lock()
        self._connections: Dict[int, Subscriber] = {}
        self._by_request: Dict[int, Set[int]] = {}
        self._by_connection: Dict[int, Set[int]] = {}
        self._closed = False

    async def subscribe(self, conn: Subscriber, request_id: int) -> None:
        key = id(conn)
        async with self._lock:
            if self._closed:
                raise RuntimeError("Tracking hub is closed")
            self._connections[key] = conn
            self._by_request.setdefault(request_id, set()).add(key)
            self._by_connection.setdefault(key, set()).add(request_id)

        logger.debug("Tracking subscription added", extra={"request_id": request_id, "connection": key})

    async def unsubscribe(self, conn: Subscriber, request_id: int) -> None:
        key = id(conn)
        async with self._lock:
            self._remove(key, request_id)

    async def disconnect(self, conn: Subscriber) -> None:
        """Drop every subscription held by conn."""
        async with self._lock:
            self._drop_connection(id(conn))

    async def publish(self, request_id: int, message: Dict[str, Any]) -> int:
        """
        Send message to every subscriber of request_id.

        Returns:
            Number of connections the message was delivered to
        """
        async with self._lock:
            targets = [
                (key, self._connections[key])
                for key in self._by_request.get(request_id, ())
            ]

        if not targets:
            return 0

        results = await asyncio.gather(
            *(asyncio.wait_for(conn.send_json(message), self._send_timeout) for _, conn in targets),
            return_exceptions=True
        )

        failed = [key for (key, _), result in zip(targets, results) if isinstance(result, Exception)]
        if failed:
            async with self._lock:
                for key in failed:
                    self._drop_connection(key)
            logger.warning(
                "Dropped tracking subscribers after failed or stalled send",
                extra={"request_id": request_id, "dropped": len(failed)}
            )

        return len(targets) - len(failed)

    async def close(self) -> None:
        """Forget all subscribers. Called once at application shutdown."""
        async with self._lock:
            count = len(self._connections)
            self._connections.clear()
            self._by_request.clear()
            self._by_connection.clear()
            self._closed = True

        logger.info("Tracking hub closed", extra={"connections": count})

    def subscriber_count(self, request_id: int) -> int:
        return len(self._by_request.get(request_id, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def _remove(self, key: int, request_id: int) -> None:
        watchers = self._by_request.get(request_id)
        if watchers is not None:
            watchers.discard(key)
            if not watchers:
                del self._by_request[request_id]

        requests = self._by_connection.get(key)
        if requests is not None:
            requests.discard(request_id)
            if not requests:
                del self._by_connection[key]
                self._connections.pop(key, None)

    def _drop_connection(self, key: int) -> None:
        for request_id in list(self._by_connection.get(key, ())):
            self._remove(key, request_id)
        self._connections.pop(key, None)
