"""
Lifecycle

Callback capabilities that managed beans may implement.

Creation callbacks run in this order:

1. Aware callbacks (``BeanNameAware``, ``BeanFactoryAware``, then the
   context-level ones)
2. ``before_init`` of every instance hook
3. ``InitializingBean.after_properties_set()``, then the init method
4. ``after_init`` of every instance hook

Destruction callbacks run in this order:

1. ``before_destruction`` of every destruction-aware instance hook
2. ``DisposableBean.destroy()``, then the destroy method
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .bean_factory import DefaultBeanFactory
    from .context import AbstractApplicationContext
    from .environment import StandardEnvironment


class BeanNameAware(ABC):
    """Bean that wants to know its own name."""

    @abstractmethod
    def set_bean_name(self, name: str) -> None:
        pass


class BeanFactoryAware(ABC):
    """Bean that wants a reference to its owning factory."""

    @abstractmethod
    def set_bean_factory(self, bean_factory: 'DefaultBeanFactory') -> None:
        pass


class ApplicationContextAware(ABC):
    """Bean that wants a reference to its application context."""

    @abstractmethod
    def set_application_context(self, context: 'AbstractApplicationContext') -> None:
        pass


class EnvironmentAware(ABC):
    """Bean that wants the context environment."""

    @abstractmethod
    def set_environment(self, environment: 'StandardEnvironment') -> None:
        pass


class EventPublisherAware(ABC):
    """Bean that wants to publish application events."""

    @abstractmethod
    def set_event_publisher(self, publisher: Any) -> None:
        pass


class InitializingBean(ABC):
    """Bean that runs logic once all properties have been set."""

    @abstractmethod
    def after_properties_set(self) -> None:
        pass


class DisposableBean(ABC):
    """Bean that releases resources when it is destroyed."""

    @abstractmethod
    def destroy(self) -> None:
        pass


class FactoryBean(ABC):
    """Bean that is itself a factory for the object exposed under its name.

    Looking up the bean name returns the result of ``get_object()``. The
    factory instance is returned for the name prefixed with ``"&"``.
    Products of a singleton factory are created once and cached.

    Example::

        class ConnectionFactoryBean(FactoryBean):
            def get_object(self):
                return connect(self.url)

            def get_object_type(self):
                return Connection

        context.get_bean("connection")   # the Connection
        context.get_bean("&connection")  # the ConnectionFactoryBean
    """

    @abstractmethod
    def get_object(self) -> Any:
        pass

    def get_object_type(self) -> Optional[type]:
        """Type of the product, or None when unknown before creation."""
        return None

    def is_singleton(self) -> bool:
        return True


class SmartFactoryBean(FactoryBean):
    """Factory bean that can ask for its product to be created on refresh."""

    def is_prototype(self) -> bool:
        return not self.is_singleton()

    def is_eager_init(self) -> bool:
        return False


class SmartInitializingSingleton(ABC):
    """Singleton called once every non-lazy singleton has been created."""

    @abstractmethod
    def after_singletons_instantiated(self) -> None:
        pass


class Lifecycle(ABC):
    """Component that can be started and stopped with its context."""

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def is_running(self) -> bool:
        pass


class SmartLifecycle(Lifecycle):
    """Lifecycle component started automatically on refresh.

    Components start in ascending phase order and stop in descending order.
    """

    DEFAULT_PHASE = 2 ** 31 - 1

    def is_auto_startup(self) -> bool:
        return True

    def get_phase(self) -> int:
        return self.DEFAULT_PHASE
