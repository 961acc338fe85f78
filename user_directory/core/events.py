"""
Fire-and-forget event channel.

`emit` schedules every listener as its own task on the running loop and
returns immediately. A failing listener is logged and never affects the
emitter or the other listeners.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Set

from user_directory.utils.logging import get_logger

log = get_logger(__name__)

Listener = Callable[[Any], Any]


class EventEmitter:
    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """
        Subscribe `listener` to `event`. Sync and async callables are accepted.

        Returns a callable that removes the subscription.
        """
        self._listeners[event].append(listener)
        return lambda: self.off(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, payload: Any) -> None:
        """Deliver `payload` to the listeners of `event`. Requires a running loop."""
        listeners = list(self._listeners.get(event, ()))
        if not listeners:
            return
        loop = asyncio.get_running_loop()
        for listener in listeners:
            task = loop.create_task(self._deliver(event, listener, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: str, listener: Listener, payload: Any) -> None:
        try:
            result = listener(payload)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            log.exception(
                f"Listener for '{event}' failed",
                extra={"event": event, "listener": getattr(listener, "__qualname__", repr(listener))},
            )

    async def wait_idle(self) -> None:
        """Wait until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["EventEmitter", "Listener"]
