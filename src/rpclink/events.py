"""Named-event publish/subscribe for client notifications."""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class ClientEvent(str, Enum):
    """Events published by the client."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"
    ERROR = "error"  # Reserved for collaborators, never emitted by the client

    def __str__(self) -> str:
        return self.value


class EventEmitter:
    """
    Subscriber registry keyed by event name.

    Listeners run synchronously in registration order. Coroutine
    listeners are scheduled on the running loop. A failing listener
    is logged and does not prevent the others from running.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}
        self._background: set[asyncio.Task[Any]] = set()

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """
        Subscribe to an event.

        Args:
            event: Event name.
            listener: Callable invoked with the emitted arguments.

        Returns:
            Function that removes the subscription.
        """
        self._listeners.setdefault(str(event), []).append((listener, False))
        return lambda: self.off(event, listener)

    def once(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe for the next emission only."""
        self._listeners.setdefault(str(event), []).append((listener, True))
        return lambda: self.off(event, listener)

    def off(self, event: str, listener: Listener | None = None) -> None:
        """
        Remove a listener, or every listener of an event when none is given.
        """
        name = str(event)
        if listener is None:
            self._listeners.pop(name, None)
            return

        entries = self._listeners.get(name)
        if not entries:
            return
        self._listeners[name] = [e for e in entries if e[0] is not listener]
        if not self._listeners[name]:
            del self._listeners[name]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(str(event), []))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener of an event.

        Returns:
            True if the event had listeners.
        """
        name = str(event)
        entries = list(self._listeners.get(name, []))
        if not entries:
            return False

        if any(once for _, once in entries):
            self._listeners[name] = [e for e in self._listeners[name] if not e[1]]
            if not self._listeners[name]:
                del self._listeners[name]

        for listener, _ in entries:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self._schedule(name, result)
            except Exception:
                logger.exception(f"Listener for '{name}' failed")

        return True

    def _schedule(self, name: str, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._background.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._background.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error(f"Async listener for '{name}' failed: {t.exception()}")

        task.add_done_callback(_done)
