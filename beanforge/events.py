"""
Events

Application events and listeners.

Any object can be published: objects that are not ApplicationEvent instances
are wrapped in a PayloadApplicationEvent. Listeners declare the event type
they handle with ``event_type``.

Example::

    class AuditListener(ApplicationListener):
        event_type = ContextRefreshedEvent

        def on_application_event(self, event):
            print("refreshed at", event.timestamp)

    context.add_listener(AuditListener())
    context.add_listener(listener(lambda order: ship(order), Order))
"""

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Type

if TYPE_CHECKING:
    from .context import AbstractApplicationContext


class ApplicationEvent:
    """Base class of application events.

    Attributes:
        source: Object on which the event initially occurred
        timestamp: Time the event was created, in seconds since the epoch
    """

    def __init__(self, source: Any):
        self.source = source
        self.timestamp = time.time()

    def __repr__(self) -> str:
        return f"{type(self).__name__}[source={self.source!r}]"


class PayloadApplicationEvent(ApplicationEvent):
    """Event carrying an arbitrary published object."""

    def __init__(self, source: Any, payload: Any):
        super().__init__(source)
        self.payload = payload

    def __repr__(self) -> str:
        return f"PayloadApplicationEvent[payload={self.payload!r}]"


class ApplicationContextEvent(ApplicationEvent):
    """Event raised by an application context about itself."""

    @property
    def application_context(self) -> 'AbstractApplicationContext':
        return self.source


class ContextRefreshedEvent(ApplicationContextEvent):
    """Published when a context has been refreshed and its singletons exist."""
    pass


class ContextStartedEvent(ApplicationContextEvent):
    """Published by ``start()`` once lifecycle components have been started."""
    pass


class ContextStoppedEvent(ApplicationContextEvent):
    """Published by ``stop()`` once lifecycle components have been stopped."""
    pass


class ContextClosedEvent(ApplicationContextEvent):
    """Published at the beginning of ``close()``, before beans are destroyed."""
    pass


class ApplicationEventPublisher(ABC):
    """Anything events can be published to."""

    @abstractmethod
    def publish_event(self, event: Any) -> None:
        pass


class ApplicationListener:
    """Listener for application events.

    Subclasses set ``event_type`` to receive only events of that type. Combine
    with ``Ordered`` to control the delivery order.
    """

    event_type: Type = ApplicationEvent

    def supports_event(self, event: ApplicationEvent) -> bool:
        return isinstance(event, self.event_type)

    def on_application_event(self, event: ApplicationEvent) -> None:
        pass


class _CallableListener(ApplicationListener):
    """Adapts a plain callable to ApplicationListener."""

    def __init__(self, fn: Callable[[Any], Any], event_type: Type):
        self.fn = fn
        self.event_type = event_type
        self._payload_type = not issubclass(event_type, ApplicationEvent)

    def supports_event(self, event: ApplicationEvent) -> bool:
        if self._payload_type:
            return (isinstance(event, PayloadApplicationEvent)
                    and isinstance(event.payload, self.event_type))
        return isinstance(event, self.event_type)

    def on_application_event(self, event: ApplicationEvent) -> None:
        self.fn(event.payload if self._payload_type else event)

    def __eq__(self, other: Any) -> bool:
        return (isinstance(other, _CallableListener)
                and other.fn == self.fn and other.event_type is self.event_type)

    def __hash__(self) -> int:
        return hash((self.fn, self.event_type))

    def __repr__(self) -> str:
        name = getattr(self.fn, '__qualname__', repr(self.fn))
        return f"<listener {name} for {self.event_type.__name__}>"


def listener(fn: Callable[[Any], Any], event_type: Type = ApplicationEvent) -> ApplicationListener:
    """Wrap ``fn`` as a listener.

    When ``event_type`` is not an ApplicationEvent subclass, ``fn`` receives
    the payload of published objects of that type instead of the event.

    Example::

        context.add_listener(listener(on_refresh, ContextRefreshedEvent))
        context.add_listener(listener(handle_order, Order))
        context.publish_event(Order(42))  # handle_order(Order(42))
    """
    return _CallableListener(fn, event_type)
