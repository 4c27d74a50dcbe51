"""Named-event listener registry for server-pushed and session events."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

LOGGER = logging.getLogger(__name__)

Listener = Callable[[Any], Union[Awaitable[None], None]]


class SessionEvent(str, enum.Enum):
    """Events emitted by the session itself (OBS events use their own names)."""

    CONNECTION_OPENED = "ConnectionOpened"
    IDENTIFIED = "Identified"
    CONNECTION_CLOSED = "ConnectionClosed"
    RECONNECT_REQUESTED = "ReconnectRequested"
    PROTOCOL_ERROR = "ProtocolError"


def _key(name: str) -> str:
    if isinstance(name, enum.Enum):
        return name.value
    return name


@dataclass
class EventDispatcher:
    """Maps event names to insertion-ordered listener sets.

    A listener that raises is logged and never stops delivery to the rest.
    Coroutine listeners are scheduled on the running loop and their failures
    are logged the same way.
    """

    logger: Union[logging.Logger, logging.LoggerAdapter] = LOGGER

    _listeners: Dict[str, Dict[Listener, None]] = field(default_factory=dict, init=False, repr=False)
    _tasks: set[asyncio.Task[Any]] = field(default_factory=set, init=False, repr=False)

    def on(self, name: str, listener: Listener) -> "EventDispatcher":
        self._listeners.setdefault(_key(name), {})[listener] = None
        return self

    def once(self, name: str, listener: Listener) -> "EventDispatcher":
        key = _key(name)

        def _once(data: Any) -> Union[Awaitable[None], None]:
            self.off(key, _once)
            return listener(data)

        _once.__wrapped__ = listener  # type: ignore[attr-defined]
        return self.on(key, _once)

    def off(self, name: str, listener: Listener) -> "EventDispatcher":
        key = _key(name)
        listeners = self._listeners.get(key)
        if not listeners:
            return self
        if listener in listeners:
            del listeners[listener]
        else:
            for registered in list(listeners):
                if getattr(registered, "__wrapped__", None) is listener:
                    del listeners[registered]
                    break
        if not listeners:
            del self._listeners[key]
        return self

    def remove_all_listeners(self, name: Optional[str] = None) -> "EventDispatcher":
        if name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(_key(name), None)
        return self

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(_key(name), ()))

    def event_names(self) -> List[str]:
        return list(self._listeners)

    def emit(self, name: str, data: Any = None) -> bool:
        """Deliver ``data`` to every listener of ``name``; return whether any ran."""

        key = _key(name)
        listeners = self._listeners.get(key)
        if not listeners:
            return False
        for listener in list(listeners):
            try:
                result = listener(data)
            except Exception:  # noqa: BLE001
                self.logger.exception('Error in event listener for "%s"', key)
                continue
            if inspect.isawaitable(result):
                self._track(key, result)
        return True

    def _track(self, key: str, awaitable: Awaitable[None]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                self.logger.error('Error in event listener for "%s"', key, exc_info=exc)

        task.add_done_callback(_done)
