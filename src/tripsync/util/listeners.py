"""Ordered listener registry used for state broadcast."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]
Unsubscribe = Callable[[], None]


class ListenerRegistry(Generic[T]):
    """
    Publish/subscribe registry.

    Listeners are invoked in registration order. A listener that raises is
    logged and skipped; delivery to the remaining listeners continues.
    Registering the same callable twice yields two independent subscriptions.
    """

    def __init__(self, name: str = "listeners") -> None:
        self._name = name
        self._listeners: dict[int, Listener[T]] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def add(self, listener: Listener[T]) -> Unsubscribe:
        token = next(self._counter)
        with self._lock:
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def notify(self, value: T) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            self.deliver(listener, value)

    def deliver(self, listener: Listener[T], value: T) -> None:
        """Invoke a single listener, isolating its failure."""
        try:
            listener(value)
        except Exception:
            logger.exception("%s: listener raised", self._name)

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
