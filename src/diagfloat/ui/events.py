"""Event bus infrastructure connecting editor hosts and the overlay controller.

Hosts publish window/cursor events here; the overlay controller subscribes
to them. Subscriptions return disposable :class:`Subscription` handles and
may be registered as one-shot.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    Hashable,
    TypeVar,
    TYPE_CHECKING,
)
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

# Type variable for event types
E = TypeVar("E", bound="Event")

# Handler type: a callable that takes an event and returns None
Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events in the system.

    All event classes should inherit from this base class and use
    the @dataclass decorator with slots=True for memory efficiency.
    """

    pass


# High-frequency event types that should not log each publish
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Host Events
# =============================================================================


@dataclass(slots=True)
class WindowEntered(Event):
    """Emitted by the host whenever focus moves into a window.

    Attributes:
        window: Handle of the newly focused window.
    """

    window: Hashable


@dataclass(slots=True)
class CursorMoved(Event):
    """Emitted by the host when the text cursor moves inside a window.

    Attributes:
        window: Handle of the window whose cursor moved.
        insert_mode: True when the move happened while editing text.
    """

    window: Hashable
    insert_mode: bool = False


_QUIET_EVENT_TYPES.add(CursorMoved)


@dataclass(slots=True)
class BufferShown(Event):
    """Emitted once a buffer is visible in a window, so renderers can attach.

    Attributes:
        buffer: Handle of the displayed buffer.
        window: Handle of the window showing it.
    """

    buffer: Hashable
    window: Hashable


# =============================================================================
# Overlay Events
# =============================================================================


@dataclass(slots=True)
class OverlayOpened(Event):
    """Emitted when the line-diagnostics overlay opens.

    Attributes:
        panel: Handle of the overlay panel window.
        buffer: Handle of the overlay content buffer.
        line_count: Number of content lines shown.
    """

    panel: Hashable
    buffer: Hashable
    line_count: int


@dataclass(slots=True)
class OverlayClosed(Event):
    """Emitted when the line-diagnostics overlay closes.

    Attributes:
        panel: Handle of the panel that was closed.
        reason: What triggered the close (``toggle``, ``cursor_moved``,
            ``window_left``, ``close_key``, ``explicit``, ``stale`` or
            ``dispose``).
    """

    panel: Hashable
    reason: str


class Subscription:
    """Disposable handle returned by :meth:`EventBus.subscribe`."""

    __slots__ = ("_bus", "_event_type", "_handler_ref")

    def __init__(self, bus: "EventBus[Any]", event_type: type[Event], handler_ref: "_HandlerRef") -> None:
        self._bus = bus
        self._event_type = event_type
        self._handler_ref = handler_ref

    @property
    def active(self) -> bool:
        return self._handler_ref.active

    @property
    def event_type(self) -> type[Event]:
        return self._event_type

    def dispose(self) -> None:
        """Remove the registration. Safe to call more than once."""
        if not self._handler_ref.active:
            return
        self._bus._discard(self._event_type, self._handler_ref)


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus for decoupled communication.

    Example::

        bus = EventBus()

        def on_enter(event: WindowEntered) -> None:
            print(f"Entered: {event.window}")

        subscription = bus.subscribe(WindowEntered, on_enter)
        bus.publish(WindowEntered(window=1000))
        subscription.dispose()

    Thread Safety:
        This implementation is NOT thread-safe. All operations should be
        performed from the host's UI thread.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        """Initialize an empty event bus."""
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E], *, once: bool = False) -> Subscription:
        """Register a handler to receive events of the specified type.

        Handlers are stored as weak references where possible (for bound
        methods), allowing automatic cleanup when the handler's owner is
        garbage collected.

        Args:
            event_type: The class of events to subscribe to.
            handler: A callable that will be invoked with the event.
            once: Dispose the registration right before its first invocation.

        Returns:
            A :class:`Subscription` that removes this registration when disposed.
        """
        handler_ref = _HandlerRef.create(handler, once=once)
        self._handlers[event_type].append(handler_ref)
        logger.debug(
            "Subscribed handler %s to event type %s%s",
            _handler_name(handler),
            event_type.__name__,
            " (once)" if once else "",
        )
        return Subscription(self, event_type, handler_ref)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove a previously registered handler.

        If the handler was registered multiple times, only the first
        occurrence is removed. Safe to call for unknown handlers.
        """
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return

        for handler_ref in handlers:
            if handler_ref.matches(handler):
                self._discard(event_type, handler_ref)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Broadcast an event to all registered handlers.

        Handlers are invoked synchronously in the order they were
        registered. A handler may dispose any subscription, including its
        own, while the event is being dispatched. If a handler raises an
        exception, it is logged and remaining handlers continue to be invoked.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES

        if not handlers:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return

        if not is_quiet:
            logger.debug(
                "Publishing %s to %d handler(s)",
                event_type.__name__,
                len(handlers),
            )

        for handler_ref in list(handlers):
            if not handler_ref.active:
                continue
            handler = handler_ref.resolve()
            if handler is None:
                # Handler was garbage collected
                self._discard(event_type, handler_ref)
                continue
            if handler_ref.once:
                self._discard(event_type, handler_ref)

            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

    def clear(self) -> None:
        """Remove all registered handlers."""
        for handlers in self._handlers.values():
            for handler_ref in handlers:
                handler_ref.active = False
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of registered handlers.

        Args:
            event_type: If provided, return count for that event type only.
                       If None, return total count across all event types.
        """
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())

    def _discard(self, event_type: type[Event], handler_ref: _HandlerRef) -> None:
        handler_ref.active = False
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, candidate in enumerate(handlers):
            if candidate is handler_ref:
                handlers.pop(index)
                return


class _HandlerRef:
    """Wrapper for handler references supporting both weak and strong refs.

    For bound methods, we use WeakMethod to allow automatic cleanup when
    the object is garbage collected. For regular functions and lambdas,
    we use a strong reference since they typically have module-level
    lifetime or are explicitly managed.
    """

    __slots__ = ("_ref", "_is_weak", "once", "active")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool, *, once: bool = False) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak
        self.once = once
        self.active = True

    @classmethod
    def create(cls, handler: Handler, *, once: bool = False) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True, once=once)
            except TypeError:
                # Some callables can't be weakly referenced
                pass
        return cls(handler, is_weak=False, once=once)

    def resolve(self) -> Handler | None:
        """Return the handler callable, or None if it was garbage collected."""
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    """Get a human-readable name for a handler for logging purposes."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    # Core infrastructure
    "Event",
    "EventBus",
    "Handler",
    "Subscription",
    # Host events
    "WindowEntered",
    "CursorMoved",
    "BufferShown",
    # Overlay events
    "OverlayOpened",
    "OverlayClosed",
]
