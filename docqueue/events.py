"""
Observer registration for job and worker lifecycle events.

Jobs, workers and queues each own an EventEmitter as their ``events`` field.
Listeners are plain callables invoked synchronously in registration order;
coroutine listeners are scheduled as tasks on the running loop.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Named-event observer registry."""

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._once: dict[str, set[int]] = defaultdict(set)
        self._tasks: set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener | None = None) -> Listener:
        """
        Register a listener for an event.

        Called without a listener it returns a decorator.
        """
        if listener is None:
            return lambda func: self.on(event, func)
        if not callable(listener):
            raise TypeError("Event listener must be callable")
        self._listeners[event].append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register a listener that is removed after its first call."""
        self.on(event, listener)
        self._once[event].add(id(listener))
        return listener

    def off(self, event: str, listener: Listener) -> bool:
        """
        Remove a listener.

        Returns:
            True if the listener was registered for the event.
        """
        listeners = self._listeners.get(event)
        if not listeners or listener not in listeners:
            return False
        registered = listeners.pop(listeners.index(listener))
        if registered not in listeners:
            self._once[event].discard(id(registered))
        return True

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
            self._once.clear()
        else:
            self._listeners.pop(event, None)
            self._once.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener registered for the event.

        A listener that raises is logged and does not prevent the
        remaining listeners from running.

        Returns:
            True if the event had listeners.
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            if id(listener) in self._once.get(event, ()):
                self.off(event, listener)
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._listener_done)
            except Exception:
                logger.exception(
                    "Event listener raised",
                    extra={"event": event}
                )
        return bool(listeners)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Async event listener raised",
                exc_info=task.exception(),
            )
