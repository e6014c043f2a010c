"""
Events and the listener registry.

An Event lives for one request. The EventBus maps event names to handlers
ordered by ascending priority (ties keep registration order). Registries are
built at startup, frozen, and then shared read-only by every request.
"""

import bisect
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models import ImageRequest, ImageResponse, ServerOptions
from .exceptions import ConfigurationError

logger = logging.getLogger("image_server.events")

READ_METHODS = ("get", "head")

Handler = Callable[["Event"], Any]


class Event:
    """
    State shared by every stage processing one request.

    ``name`` is fixed at creation (e.g. ``image.get``); the request, response
    and arguments are mutated by the stages as the request moves along.
    """

    def __init__(
        self,
        name: str,
        request: ImageRequest,
        response: ImageResponse,
        config: ServerOptions,
        access_control: Any,
        arguments: Optional[Dict[str, Any]] = None,
    ):
        self._name = name
        self.request = request
        self.response = response
        self.config = config
        self.access_control = access_control
        self.arguments: Dict[str, Any] = dict(arguments or {})

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_read(self) -> bool:
        return self._name.rsplit(".", 1)[-1] in READ_METHODS

    def has_argument(self, key: str) -> bool:
        return key in self.arguments

    def get_argument(self, key: str, default: Any = None) -> Any:
        return self.arguments.get(key, default)

    def set_argument(self, key: str, value: Any) -> "Event":
        self.arguments[key] = value
        return self

    def __repr__(self) -> str:
        return f"Event(name={self._name!r})"


@dataclass(frozen=True, order=True)
class ListenerRegistration:
    priority: int
    sequence: int
    event_name: str = field(compare=False)
    handler: Handler = field(compare=False)


class EventBus:
    def __init__(self):
        self._listeners: Dict[str, List[ListenerRegistration]] = {}
        self._sequence = itertools.count()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def subscribe(self, event_name: str, handler: Handler, priority: int = 0) -> "EventBus":
        """
        Register ``handler`` for ``event_name``.

        Raises:
            ConfigurationError: the registry is frozen or handler is not callable
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot subscribe to '{event_name}': listener registry is frozen"
            )
        if not callable(handler):
            raise ConfigurationError(
                f"Invalid listener for '{event_name}': {type(handler).__name__} is not callable"
            )

        registration = ListenerRegistration(
            priority=int(priority),
            sequence=next(self._sequence),
            event_name=event_name,
            handler=handler,
        )
        bisect.insort(self._listeners.setdefault(event_name, []), registration)
        return self

    def freeze(self) -> "EventBus":
        """Refuse further subscriptions. Call before serving requests."""
        self._frozen = True
        return self

    def listeners(self, event_name: str) -> Tuple[Handler, ...]:
        return tuple(reg.handler for reg in self._listeners.get(event_name, ()))

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    def event_names(self) -> List[str]:
        return sorted(self._listeners)

    def dispatch(self, event_name: str, event: Event) -> Event:
        """
        Invoke every handler for ``event_name`` in order with the same event.

        A handler raising stops the dispatch; the exception propagates and
        handlers that already ran are not rolled back.
        """
        for registration in self._listeners.get(event_name, ()):
            logger.debug(
                f"Dispatching {event_name} to {_handler_name(registration.handler)}",
                extra={"event": event_name, "priority": registration.priority},
            )
            registration.handler(event)
        return event


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__
