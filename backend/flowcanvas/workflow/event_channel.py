"""
Event Channel — minimal typed publish/subscribe.

Used by the document store to announce mutations. Delivery is
synchronous: ``publish`` returns after every subscriber has run, and
subscribers are called in the order they subscribed. Nothing is
buffered or replayed; a late subscriber only sees later events.
"""

from __future__ import annotations

from logging import getLogger
from typing import Callable, Dict, Generic, List, TypeVar

logger = getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class Subscription:
    """Handle returned by ``EventChannel.subscribe``; call ``close`` to stop."""

    def __init__(self, channel: "EventChannel", token: int) -> None:
        self._channel = channel
        self._token = token
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._channel._remove(self._token)
            self._active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class EventChannel(Generic[T]):
    """FIFO fan-out of events of type ``T`` to subscribers."""

    def __init__(self, name: str = "events") -> None:
        self.name = name
        self._subscribers: Dict[int, Subscriber] = {}
        self._next_token = 0

    def subscribe(self, callback: Subscriber) -> Subscription:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        return Subscription(self, token)

    def publish(self, event: T) -> int:
        """Deliver ``event`` to every current subscriber.

        A subscriber that raises is logged and skipped; the remaining
        subscribers still receive the event. Returns the number of
        subscribers called.
        """
        # Copy so callbacks may subscribe/unsubscribe while we iterate.
        callbacks: List[Subscriber] = list(self._subscribers.values())
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(f"[{self.name}] subscriber {callback!r} failed")
        return len(callbacks)

    def _remove(self, token: int) -> None:
        self._subscribers.pop(token, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def clear(self) -> None:
        self._subscribers.clear()
