"""Plain observer lists for lighting events."""

from __future__ import annotations

from typing import Any, Callable, List

import structlog

logger = structlog.get_logger()


class EventHook:
    """
    Multicast callback list.

    Handler exceptions are logged and swallowed so a misbehaving subscriber
    cannot stall the tick.
    """

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[..., Any]] = []

    def subscribe(self, callback: Callable[..., Any]) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: Callable[..., Any]) -> None:
        self._callbacks = [cb for cb in self._callbacks if cb != callback]

    def emit(self, *args: Any) -> None:
        for callback in list(self._callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.error("Event handler failed", event=self.name, error=str(e))

    def clear(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)
