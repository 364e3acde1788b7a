"""Repository mutation events consumed by the caching services.

The services never own a bus; they receive any object satisfying
:class:`EventBus` and subscribe their handlers at construction.
:class:`InMemoryEventBus` is a minimal synchronous implementation for
embedding applications and tests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from gitscribe.logging import get_logger

__all__ = [
    "EventBus",
    "EventHandler",
    "GitEvent",
    "InMemoryEventBus",
    "paths_from_payload",
]

logger = get_logger(__name__)

EventHandler = Callable[[Any], None]


class GitEvent(str, Enum):
    """Named mutation notifications.

    Path-scoped events carry a ``{"paths": [...]}`` payload; ``file:*``
    events carry ``{"path": ...}``.
    """

    FILES_STAGED = "git:files-staged"
    FILES_UNSTAGED = "git:files-unstaged"
    CHANGES_DISCARDED = "git:changes-discarded"
    COMMIT_CREATED = "git:commit-created"
    BRANCH_SWITCHED = "git:branch-switched"
    PULL_COMPLETED = "git:pull-completed"
    BRANCH_CREATED = "git:branch-created"
    PUSH_COMPLETED = "git:push-completed"
    FETCH_COMPLETED = "git:fetch-completed"
    FILE_CHANGED = "file:changed"
    FILE_SAVED = "file:saved"


#: Events whose payload names the affected paths
PATH_SCOPED_EVENTS: tuple[GitEvent, ...] = (
    GitEvent.FILES_STAGED,
    GitEvent.FILES_UNSTAGED,
    GitEvent.CHANGES_DISCARDED,
)


@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe interface the services depend on."""

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event``."""
        ...

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        """Remove a handler registered with :meth:`subscribe`."""
        ...

    def publish(self, event: str, payload: Any = None) -> None:
        """Deliver ``payload`` to every handler of ``event``."""
        ...


def _event_name(event: str) -> str:
    return event.value if isinstance(event, Enum) else event


class InMemoryEventBus:
    """Synchronous event bus.

    Handlers run in subscription order inside :meth:`publish`. A handler
    that raises is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(_event_name(event), []).append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(_event_name(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(_event_name(event), [])):
            try:
                handler(payload)
            except Exception as e:
                logger.warning(
                    "event_handler_failed",
                    event_name=_event_name(event),
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                )

    def handler_count(self, event: str | None = None) -> int:
        if event is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers.get(_event_name(event), []))


def paths_from_payload(payload: Any) -> list[str]:
    """Extract the affected paths from an event payload.

    Accepts ``{"paths": [...]}``, ``{"path": ...}``, ``{"file_path": ...}``,
    a bare string, or an iterable of strings.
    """
    if payload is None:
        return []
    if isinstance(payload, str):
        return [payload]
    if isinstance(payload, Mapping):
        if "paths" in payload:
            return paths_from_payload(payload["paths"])
        for key in ("path", "file_path", "filePath"):
            value = payload.get(key)
            if isinstance(value, str):
                return [value]
        return []
    if isinstance(payload, Iterable):
        return [str(p) for p in payload]
    return []
