"""
Message channels - event handlers keyed by connection path.

A channel owner groups handlers for one path. Each incoming message is a
JSON object ``{"event": <name>, "data": <payload>}``; the handler registered
for that event receives ``(data, connection)`` and its return value is sent
back as ``{"event": <name>, "data": <result>}``. Nothing a handler raises
closes the connection: failures become ``{"event": "error", ...}`` replies.

Example:
    class ChatChannel:
        @on_event("message")
        async def message(self, data, connection):
            return {"echo": data}

    channels = ChannelRegistry()
    channels.register("/chat", ChatChannel)
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .faults import ChannelNotFoundError, DuplicateRegistrationError, HttpFault
from .pipeline import call_step
from .schema import to_jsonable


logger = logging.getLogger("heron.channels")

EVENT_ATTR = "__channel_events__"
ERROR_EVENT = "error"
INTERNAL_CHANNEL_ERROR = "Internal channel error"


def on_event(event: str) -> Callable:
    """Mark a method as the handler of ``event``."""
    def decorator(func):
        if not hasattr(func, EVENT_ATTR):
            func.__channel_events__ = []
        func.__channel_events__.append(event)
        return func
    return decorator


def error_reply(message: str, details: Any = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {"message": message}
    if details is not None:
        data["details"] = details
    return {"event": ERROR_EVENT, "data": data}


@dataclass
class ChannelRoute:
    """Handlers registered for one path."""
    path: str
    instance: Any
    handlers: Dict[str, Callable[..., Any]] = field(default_factory=dict)

    @property
    def events(self) -> List[str]:
        return list(self.handlers)


class ChannelRegistry:
    """Path -> {event name -> handler}."""

    def __init__(self):
        self._routes: Dict[str, ChannelRoute] = {}

    def register(
        self,
        path: str,
        owner: Any,
        events: Optional[Mapping[str, Union[str, Callable[..., Any]]]] = None,
    ) -> ChannelRoute:
        """
        Register a channel owner at ``path``.

        Args:
            path: Connection path (e.g. "/chat")
            owner: Instance, or a class instantiated once with no arguments
            events: Explicit event -> handler (callable or method name);
                    defaults to the owner's ``@on_event`` methods

        Raises:
            DuplicateRegistrationError: If ``path`` is already taken
        """
        if path in self._routes:
            raise DuplicateRegistrationError(path)

        start = time.perf_counter()
        instance = owner() if inspect.isclass(owner) else owner

        handlers: Dict[str, Callable[..., Any]] = {}
        if events is None:
            for name, func in inspect.getmembers(type(instance), callable):
                for event in getattr(func, EVENT_ATTR, ()):
                    handlers[event] = getattr(instance, name)
        else:
            for event, handler in events.items():
                handlers[event] = getattr(instance, handler) if isinstance(handler, str) else handler

        route = ChannelRoute(path, instance, handlers)
        self._routes[path] = route

        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            f"{path} ({len(handlers)} event{'s' if len(handlers) != 1 else ''}) "
            f"-> [{', '.join(handlers)}]: +{elapsed:.0f}ms"
        )
        return route

    def get(self, path: str) -> Optional[ChannelRoute]:
        return self._routes.get(path)

    def paths(self) -> List[str]:
        return list(self._routes)

    def __contains__(self, path: str) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    async def dispatch(
        self,
        path: str,
        raw: Union[str, bytes, Mapping[str, Any]],
        connection: Any = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Handle one incoming message.

        Returns:
            The reply envelope, or ``None`` when the handler returned ``None``

        Raises:
            ChannelNotFoundError: If nothing is registered at ``path``
        """
        route = self._routes.get(path)
        if route is None:
            raise ChannelNotFoundError(path)

        if isinstance(raw, (str, bytes, bytearray)):
            try:
                message = json.loads(raw)
            except ValueError:
                return error_reply("Invalid message: expected JSON")
        else:
            message = raw

        if not isinstance(message, Mapping) or not isinstance(message.get("event"), str):
            return error_reply("Invalid message: missing event")

        event = message["event"]
        handler = route.handlers.get(event)
        if handler is None:
            return error_reply(f"Unknown event: {event}")

        try:
            result = await call_step(handler, message.get("data"), connection)
            if result is None:
                return None
            data = to_jsonable(result)
        except asyncio.CancelledError:
            raise
        except HttpFault as fault:
            return error_reply(fault.message, fault.details)
        except Exception:
            logger.exception(f"Unhandled error in channel {path} event {event!r}")
            return error_reply(INTERNAL_CHANNEL_ERROR)

        return {"event": event, "data": data}


__all__ = [
    "ChannelRegistry",
    "ChannelRoute",
    "on_event",
    "error_reply",
]
