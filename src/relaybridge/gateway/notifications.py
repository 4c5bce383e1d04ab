"""
Server-sent events transport for gateway notifications.

Holds the single live connection from a gateway session to
``GET /notifications`` and republishes every event on the session's
``NotificationStream``. Event payloads are JSON objects such as::

    data: {"type": "GatewayBatchUpdated", "batchHash": "0xabc..."}

Malformed events are logged and skipped; they never stop the connection.

While subscribers remain, a connection that ends or fails is reopened.
After a reconnect a batch update without a hash is published so waiters
re-read status they may have missed. Consecutive failures up to
``reconnect_attempts`` close the stream, releasing every subscriber.
"""

import asyncio
import json
import logging
from typing import Iterable, List, Optional

import httpx
from pydantic import ValidationError

from ..engine.events import NotificationStream
from ..engine.exceptions import GatewayError
from ..schemas.bases import NotificationEvent, NotificationType
from .constants import NOTIFICATIONS_PATH

logger = logging.getLogger(__name__)

RECONNECT_ATTEMPTS = 3
RECONNECT_DELAY = 1.0


def parse_event(data: str) -> Optional[NotificationEvent]:
    """
    Parse one SSE ``data`` payload into a ``NotificationEvent``.

    Returns:
        The event, or None if the payload is not a valid notification.
    """
    try:
        return NotificationEvent.model_validate(json.loads(data))
    except (ValueError, ValidationError) as e:
        logger.warning("Skipping malformed notification %r: %s", data[:200], e)
        return None


def iter_event_data(lines: Iterable[str]) -> Iterable[str]:
    """Group SSE lines into event payloads (``data`` fields joined by newlines)."""
    buffer: List[str] = []
    for line in lines:
        if not line:
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            buffer.append(value[1:] if value.startswith(" ") else value)
    if buffer:
        yield "\n".join(buffer)


class SseNotificationTransport:
    """Background reader feeding a ``NotificationStream`` from the gateway."""

    def __init__(
        self,
        session,
        stream: NotificationStream,
        reconnect_attempts: int = RECONNECT_ATTEMPTS,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        """
        Args:
            session: ``GatewaySession`` used to open the authenticated stream.
            stream: Stream the parsed events are published on.
            reconnect_attempts: Consecutive failed connections before the
                stream is closed.
            reconnect_delay: Seconds to wait before reconnecting.
        """
        self._session = session
        self._stream = stream
        self._reconnect_attempts = max(1, reconnect_attempts)
        self._reconnect_delay = reconnect_delay
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Open the connection in a background task. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Close the connection and wait for the reader task to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        failures = 0
        reconnecting = False
        while True:
            try:
                async with self._session.stream("GET", NOTIFICATIONS_PATH) as response:
                    response.raise_for_status()
                    failures = 0
                    if reconnecting:
                        await self._stream.publish(NotificationEvent(type=NotificationType.GATEWAY_BATCH_UPDATED))
                    await self._read(response)
                logger.info("Gateway notification stream ended")
            except (httpx.HTTPError, GatewayError) as e:
                failures += 1
                logger.warning(
                    "Gateway notification stream failed (%d/%d): %s",
                    failures, self._reconnect_attempts, e,
                )

            if self._stream.closed or not self._stream.subscriber_count:
                return
            if failures >= self._reconnect_attempts:
                logger.error(
                    "Gateway notification stream lost, releasing %d subscriptions",
                    self._stream.subscriber_count,
                )
                self._stream.close()
                return
            reconnecting = True
            await asyncio.sleep(self._reconnect_delay)

    async def _read(self, response: httpx.Response) -> None:
        buffer: List[str] = []
        async for line in response.aiter_lines():
            # Dispatch on the blank line terminating each event
            if line:
                buffer.append(line)
                continue
            await self._dispatch(buffer)
            buffer = []
        await self._dispatch(buffer)

    async def _dispatch(self, lines: List[str]) -> None:
        for data in iter_event_data(lines):
            event = parse_event(data)
            if event is not None:
                await self._stream.publish(event)
