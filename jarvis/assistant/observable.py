"""Publish/subscribe channel that caches its latest value."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

LOGGER = logging.getLogger("jarvis-assistant.observable")


class Observable(Generic[T]):
    """Hold the latest value and push every new value to subscribers.

    New subscribers immediately receive the cached value, so a display that
    attaches late still starts from a complete snapshot. Callers are expected
    to publish immutable values; subscribers never see a partial update.
    """

    def __init__(self, initial: T, name: str = "observable") -> None:
        self._value = initial
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def publish(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            self._deliver(callback, value)

    def subscribe(self, callback: Callable[[T], None], *, replay: bool = True) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it."""
        self._subscribers.append(callback)
        if replay:
            self._deliver(callback, self._value)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _deliver(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as exc:
            LOGGER.error("[%s] Subscriber callback failed: %s", self._name, exc, exc_info=True)
