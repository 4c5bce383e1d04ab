"""
Notification stream with explicit subscription handles.

Gateway state-change events are published into a ``NotificationStream``;
consumers subscribe with an async callback and get back a ``Subscription``
handle that releases the callback exactly once, however many times
``unsubscribe`` is called.
"""

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

from ..schemas.bases import NotificationEvent

logger = logging.getLogger(__name__)


NotificationHandlerFunc = Callable[[NotificationEvent], Awaitable[None]]
CloseHandlerFunc = Callable[[], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``NotificationStream.subscribe``."""
    id: int
    handler: NotificationHandlerFunc
    on_close: Optional[CloseHandlerFunc] = None
    active: bool = field(default=True)

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, active={self.active})"


class NotificationStream:
    """Dispatcher for gateway notifications.

    A stream is owned by one gateway session. Closing it drops every
    subscription and runs each subscription's ``on_close`` callback so that
    pending waiters are released even if no terminal event ever arrived.
    """

    def __init__(self) -> None:
        """Initialize with no subscribers."""
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._closed = False
        self._on_first_subscribe: Optional[Callable[[], None]] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def on_first_subscribe(self, starter: Callable[[], None]) -> None:
        """Register a callback run when the first subscription opens.

        Used by the gateway session to open the live connection lazily.
        """
        self._on_first_subscribe = starter

    def subscribe(
        self,
        handler: NotificationHandlerFunc,
        on_close: Optional[CloseHandlerFunc] = None,
    ) -> Subscription:
        """
        Register an async handler for every published event.

        Args:
            handler: Coroutine function called with each ``NotificationEvent``.
            on_close: Optional plain callback run if the stream closes while
                the subscription is still active.

        Returns:
            Subscription handle to pass to ``unsubscribe``.

        Raises:
            TypeError: If handler is not a coroutine function.
            RuntimeError: If the stream is already closed.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")
        if self._closed:
            raise RuntimeError("Notification stream is closed")

        subscription = Subscription(id=next(self._ids), handler=handler, on_close=on_close)
        first = not self._subscriptions
        self._subscriptions[subscription.id] = subscription
        logger.debug("Opened %r", subscription)

        if first and self._on_first_subscribe is not None:
            self._on_first_subscribe()
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """
        Release a subscription.

        Returns:
            True if this call released it, False if it was already released.
        """
        if not subscription.active:
            return False
        subscription.active = False
        self._subscriptions.pop(subscription.id, None)
        logger.debug("Released %r", subscription)
        return True

    async def publish(self, event: NotificationEvent) -> None:
        """
        Deliver an event to every subscription active at publish time.

        Handlers run concurrently. A subscription released while another
        handler is running is skipped.
        """
        if self._closed:
            return
        targets = list(self._subscriptions.values())
        await asyncio.gather(*(self._deliver(subscription, event) for subscription in targets))

    @staticmethod
    async def _deliver(subscription: Subscription, event: NotificationEvent) -> None:
        if subscription.active:
            await subscription.handler(event)

    def close(self) -> None:
        """Close the stream, releasing every subscription exactly once."""
        if self._closed:
            return
        self._closed = True
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.active = False
            if subscription.on_close is not None:
                subscription.on_close()
        logger.debug("Notification stream closed, released %d subscriptions", len(subscriptions))
