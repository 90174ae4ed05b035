"""
AbstractApplicationContext

This module provides the lifecycle orchestrator of the container. A context
owns a bean factory and drives it through ``refresh()``:

1. Prepare: mark active, capture the start time, open the early-event buffer
2. Obtain a fresh bean factory with its definitions loaded
3. Prepare the factory: resolvable dependencies, environment, context-level
   instance hooks, scopes
4. Invoke factory-level hooks, then freeze the definition store
5. Register instance-level hooks
6. Initialize the message source and the event multicaster
7. ``on_refresh()`` template method
8. Attach listeners and replay the buffered events
9. Create every non-lazy singleton
10. Start lifecycle beans and publish ContextRefreshedEvent

A failing phase cancels the refresh: every singleton created so far is
destroyed, the context becomes inactive and the error is re-raised.

``refresh()`` and ``close()`` are serialized by one reentrant monitor.
Closing is terminal: a closed context cannot be refreshed again.
"""

import atexit
import logging
import threading
import time
from abc import abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from .bean_factory import DefaultBeanFactory
from .context_support import ApplicationListenerDetector, ContextAwareProcessor
from .environment import StandardEnvironment
from .events import (
    ApplicationEvent,
    ApplicationEventPublisher,
    ApplicationListener,
    ContextClosedEvent,
    ContextRefreshedEvent,
    ContextStartedEvent,
    ContextStoppedEvent,
    PayloadApplicationEvent,
)
from .exceptions import ContextStateError
from .get_proxy import GetProxy
from .hook_registration import invoke_factory_hooks, register_instance_hooks
from .hooks import BeanFactoryHook, InstanceHook
from .lifecycle_processor import DefaultLifecycleProcessor, LifecycleProcessor
from .message_source import DelegatingMessageSource, MessageSource
from .multicaster import SimpleEventMulticaster
from .ordering import sort_by_order
from .scope import Scope, ScopeRegistry

logger = logging.getLogger(__name__)

T = TypeVar('T')

MESSAGE_SOURCE_BEAN_NAME = "message_source"
EVENT_MULTICASTER_BEAN_NAME = "event_multicaster"
LIFECYCLE_PROCESSOR_BEAN_NAME = "lifecycle_processor"
ENVIRONMENT_BEAN_NAME = "environment"


class AbstractApplicationContext(ApplicationEventPublisher):
    """Lifecycle orchestrator around a bean factory.

    Subclasses provide the bean factory by implementing
    ``refresh_bean_factory()``, ``get_bean_factory()`` and
    ``close_bean_factory()``, and may override the ``post_process_bean_factory()``,
    ``on_refresh()`` and ``on_close()`` template methods.

    Attributes:
        parent: Parent context for bean lookup fallback and event propagation
        display_name: Name used in log and error messages
        startup_date: Time of the last refresh, in seconds since the epoch
        event_multicaster: Event bus, None until phase 6 of a refresh
        message_source: Message source, None until phase 6 of a refresh
        lifecycle_processor: Lifecycle processor, None until refresh finished
        get: Subscript lookup, ``context.get[Service]()`` or ``context.get["name"]()``
    """

    def __init__(self, parent: Optional['AbstractApplicationContext'] = None,
                 environment: Optional[StandardEnvironment] = None,
                 display_name: Optional[str] = None):
        self.parent = parent
        self.display_name = display_name or f"{type(self).__name__}@{id(self):x}"
        self.startup_date: Optional[float] = None
        self.event_multicaster: Optional[SimpleEventMulticaster] = None
        self.message_source: Optional[MessageSource] = None
        self.lifecycle_processor: Optional[LifecycleProcessor] = None
        self.get = GetProxy(self)
        self._environment = environment
        self._factory_hooks: List[BeanFactoryHook] = []
        self._instance_hooks: List[InstanceHook] = []
        self._listeners: Dict[ApplicationListener, None] = {}
        self._early_listeners: Optional[List[ApplicationListener]] = None
        self._early_events: Optional[List[ApplicationEvent]] = None
        self._scopes = ScopeRegistry()
        self._monitor = threading.RLock()
        self._active = False
        self._closed = False
        self._shutdown_hook_registered = False

    # Configuration

    @property
    def environment(self) -> StandardEnvironment:
        if self._environment is None:
            self._environment = StandardEnvironment()
        return self._environment

    @environment.setter
    def environment(self, environment: StandardEnvironment) -> None:
        self._environment = environment

    def add_factory_hook(self, hook: BeanFactoryHook) -> None:
        """Register a factory-level hook, applied on the next refresh."""
        self._factory_hooks.append(hook)

    def add_instance_hook(self, hook: InstanceHook) -> None:
        """Register an instance-level hook, applied on the next refresh."""
        self._instance_hooks.append(hook)

    @property
    def factory_hooks(self) -> List[BeanFactoryHook]:
        return list(self._factory_hooks)

    def add_listener(self, listener: ApplicationListener) -> None:
        """Attach a listener.

        Listeners added before refresh also receive the events that were
        buffered before the event bus existed.
        """
        if self.event_multicaster is not None:
            self.event_multicaster.add_listener(listener)
        self._listeners[listener] = None

    @property
    def listeners(self) -> List[ApplicationListener]:
        return list(self._listeners)

    def register_scope(self, name: str, scope: Scope) -> None:
        """Register a custom scope, applied on the next refresh and, when the
        context is active, on the current bean factory as well.

        Raises:
            ValueError: For the reserved names "singleton" and "prototype"
        """
        self._scopes.register_scope(name, scope)
        if self._active and self.has_bean_factory():
            self.get_bean_factory().register_scope(name, scope)

    # Bean factory template methods

    @abstractmethod
    def refresh_bean_factory(self) -> None:
        """Create the bean factory for this refresh and load its definitions."""
        pass

    @abstractmethod
    def get_bean_factory(self) -> DefaultBeanFactory:
        pass

    @abstractmethod
    def has_bean_factory(self) -> bool:
        pass

    @abstractmethod
    def close_bean_factory(self) -> None:
        pass

    def post_process_bean_factory(self, bean_factory: DefaultBeanFactory) -> None:
        """Template method: modify the factory before factory hooks run."""
        pass

    def on_refresh(self) -> None:
        """Template method: runs after infrastructure beans exist, before singletons."""
        pass

    def on_close(self) -> None:
        """Template method: runs last when the context closes."""
        pass

    # Refresh

    def refresh(self) -> None:
        """Load or reload the configuration and create every non-lazy singleton.

        Refreshing an active context destroys its singletons and builds a new
        bean factory.

        Raises:
            ContextStateError: When the context has been closed
            BeansError: When a phase fails; the context is left inactive
        """
        with self._monitor:
            if self._closed:
                raise ContextStateError(
                    f"{self.display_name} has been closed already: "
                    f"a closed context cannot be refreshed"
                )
            self._prepare_refresh()
            try:
                bean_factory = self._obtain_fresh_bean_factory()
                self._prepare_bean_factory(bean_factory)
                self.post_process_bean_factory(bean_factory)
                self._invoke_factory_hooks(bean_factory)
                self._register_instance_hooks(bean_factory)
                self._init_message_source(bean_factory)
                self._init_event_multicaster(bean_factory)
                self.on_refresh()
                self._register_listeners(bean_factory)
                self._finish_bean_factory_initialization(bean_factory)
                self._finish_refresh(bean_factory)
            except BaseException as e:
                logger.warning(
                    "Exception encountered during context initialization - "
                    "cancelling refresh attempt: %s", e
                )
                self._destroy_beans()
                self._cancel_refresh()
                raise

    def _prepare_refresh(self) -> None:
        self.startup_date = time.time()
        self._closed = False
        self._active = True
        logger.debug("Refreshing %s", self.display_name)

        if self._early_listeners is None:
            self._early_listeners = list(self._listeners)
        else:
            self._listeners = dict.fromkeys(self._early_listeners)
        self.event_multicaster = None
        self._early_events = []

    def _obtain_fresh_bean_factory(self) -> DefaultBeanFactory:
        self.refresh_bean_factory()
        return self.get_bean_factory()

    def _prepare_bean_factory(self, bean_factory: DefaultBeanFactory) -> None:
        bean_factory.add_instance_hook(ContextAwareProcessor(self))
        for hook in sort_by_order(self._instance_hooks):
            bean_factory.add_instance_hook(hook)

        bean_factory.register_resolvable_dependency(DefaultBeanFactory, bean_factory)
        bean_factory.register_resolvable_dependency(AbstractApplicationContext, self)
        bean_factory.register_resolvable_dependency(ApplicationEventPublisher, self)

        if not (bean_factory.contains_definition(ENVIRONMENT_BEAN_NAME)
                or bean_factory.contains_singleton(ENVIRONMENT_BEAN_NAME)):
            bean_factory.register_singleton(ENVIRONMENT_BEAN_NAME, self.environment)
        for name in self._scopes.scope_names:
            bean_factory.register_scope(name, self._scopes.get_scope(name))

    def _invoke_factory_hooks(self, bean_factory: DefaultBeanFactory) -> None:
        invoke_factory_hooks(bean_factory, self._factory_hooks)
        bean_factory.freeze_configuration()

    def _register_instance_hooks(self, bean_factory: DefaultBeanFactory) -> None:
        register_instance_hooks(bean_factory)
        bean_factory.add_instance_hook(ApplicationListenerDetector(self))

    def _init_message_source(self, bean_factory: DefaultBeanFactory) -> None:
        parent_source = self.parent.message_source if self.parent is not None else None
        if bean_factory.contains_definition(MESSAGE_SOURCE_BEAN_NAME):
            source = bean_factory.get_bean(MESSAGE_SOURCE_BEAN_NAME, MessageSource)
            if (isinstance(source, DelegatingMessageSource)
                    and source.parent_message_source is None and parent_source is not None):
                source.parent_message_source = parent_source
            logger.debug("Using MessageSource [%r]", source)
        else:
            source = DelegatingMessageSource(parent_source)
            bean_factory.register_singleton(MESSAGE_SOURCE_BEAN_NAME, source)
            logger.debug(
                "No '%s' bean, using [%s]", MESSAGE_SOURCE_BEAN_NAME, type(source).__name__
            )
        self.message_source = source

    def _init_event_multicaster(self, bean_factory: DefaultBeanFactory) -> None:
        if bean_factory.contains_definition(EVENT_MULTICASTER_BEAN_NAME):
            multicaster = bean_factory.get_bean(EVENT_MULTICASTER_BEAN_NAME, SimpleEventMulticaster)
            logger.debug("Using ApplicationEventMulticaster [%r]", multicaster)
        else:
            multicaster = SimpleEventMulticaster(bean_factory)
            bean_factory.register_singleton(EVENT_MULTICASTER_BEAN_NAME, multicaster)
            logger.debug(
                "No '%s' bean, using [%s]", EVENT_MULTICASTER_BEAN_NAME, type(multicaster).__name__
            )
        self.event_multicaster = multicaster

    def _register_listeners(self, bean_factory: DefaultBeanFactory) -> None:
        multicaster = self.event_multicaster
        for listener in list(self._listeners):
            multicaster.add_listener(listener)
        for name in bean_factory.get_bean_names_for_type(ApplicationListener, True, False):
            multicaster.add_listener_bean(name)

        early_events = self._early_events
        self._early_events = None
        if early_events:
            for event in early_events:
                multicaster.multicast_event(event)

    def _finish_bean_factory_initialization(self, bean_factory: DefaultBeanFactory) -> None:
        bean_factory.pre_instantiate_singletons()

    def _finish_refresh(self, bean_factory: DefaultBeanFactory) -> None:
        bean_factory.clear_metadata_cache()
        self._init_lifecycle_processor(bean_factory)
        self.lifecycle_processor.on_refresh()
        self.publish_event(ContextRefreshedEvent(self))
        logger.debug(
            "Refreshed %s in %.3f s", self.display_name, time.time() - self.startup_date
        )

    def _init_lifecycle_processor(self, bean_factory: DefaultBeanFactory) -> None:
        if bean_factory.contains_definition(LIFECYCLE_PROCESSOR_BEAN_NAME):
            processor = bean_factory.get_bean(LIFECYCLE_PROCESSOR_BEAN_NAME, LifecycleProcessor)
        else:
            processor = DefaultLifecycleProcessor()
            processor.set_bean_factory(bean_factory)
            bean_factory.register_singleton(LIFECYCLE_PROCESSOR_BEAN_NAME, processor)
        self.lifecycle_processor = processor

    def _cancel_refresh(self) -> None:
        """Leave the context inactive and without a bean factory.

        Called after the singletons of a failed refresh have been destroyed.
        """
        self._active = False
        self._early_events = None
        self.event_multicaster = None
        self.lifecycle_processor = None
        self.close_bean_factory()

    def _destroy_beans(self) -> None:
        if self.has_bean_factory():
            self.get_bean_factory().destroy_singletons()

    # Close

    def close(self) -> None:
        """Close the context: publish ContextClosedEvent, stop lifecycle beans,
        destroy every singleton and release the bean factory.

        Idempotent. Closing is terminal.
        """
        with self._monitor:
            self._do_close()
            if self._shutdown_hook_registered:
                atexit.unregister(self.close)
                self._shutdown_hook_registered = False

    def _do_close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._active:
            return
        logger.debug("Closing %s", self.display_name)

        try:
            self.publish_event(ContextClosedEvent(self))
        except Exception:
            logger.warning(
                "Exception thrown from ApplicationListener handling ContextClosedEvent",
                exc_info=True
            )
        if self.lifecycle_processor is not None:
            try:
                self.lifecycle_processor.on_close()
            except Exception:
                logger.warning(
                    "Exception thrown from LifecycleProcessor on context close", exc_info=True
                )

        self._destroy_beans()
        self.close_bean_factory()
        self.on_close()

        if self._early_listeners is not None:
            self._listeners = dict.fromkeys(self._early_listeners)
        self.event_multicaster = None
        self.lifecycle_processor = None
        self._active = False

    def register_shutdown_hook(self) -> None:
        """Close this context when the interpreter exits, unless closed before."""
        with self._monitor:
            if not self._shutdown_hook_registered:
                atexit.register(self.close)
                self._shutdown_hook_registered = True

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> 'AbstractApplicationContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # Events

    def publish_event(self, event: Any) -> None:
        """Publish an event, or any object wrapped in a PayloadApplicationEvent.

        Events published before the event bus exists are buffered and
        delivered once the listeners are attached. Every event is also
        published to the parent context.

        Raises:
            ContextStateError: When the context has not been prepared by refresh()
        """
        if isinstance(event, ApplicationEvent):
            application_event = event
        else:
            application_event = PayloadApplicationEvent(self, event)

        if self.event_multicaster is not None:
            self.event_multicaster.multicast_event(application_event)
        elif self._early_events is not None:
            self._early_events.append(application_event)
        else:
            raise ContextStateError(
                f"Event multicaster not initialized - call 'refresh' before "
                f"publishing events via the context: {self.display_name}"
            )

        if self.parent is not None:
            self.parent.publish_event(event)

    # Lifecycle

    def start(self) -> None:
        """Start every Lifecycle bean and publish ContextStartedEvent."""
        self._assert_bean_factory_active()
        self.lifecycle_processor.start()
        self.publish_event(ContextStartedEvent(self))

    def stop(self) -> None:
        """Stop every Lifecycle bean and publish ContextStoppedEvent."""
        self._assert_bean_factory_active()
        self.lifecycle_processor.stop()
        self.publish_event(ContextStoppedEvent(self))

    def is_running(self) -> bool:
        return self.lifecycle_processor is not None and self.lifecycle_processor.is_running()

    # Bean factory delegation

    def _assert_bean_factory_active(self) -> None:
        if not self._active:
            if self._closed:
                raise ContextStateError(f"{self.display_name} has been closed already")
            raise ContextStateError(f"{self.display_name} has not been refreshed yet")

    def get_bean(self, name_or_type: Union[str, Type[T]],
                 required_type: Optional[Type[T]] = None) -> Any:
        """Return a bean by name or type, see ``DefaultBeanFactory.get_bean()``.

        Raises:
            ContextStateError: When the context is not active
        """
        self._assert_bean_factory_active()
        return self.get_bean_factory().get_bean(name_or_type, required_type)

    def get_beans_of_type(self, bean_type: Type[T], include_non_singletons: bool = True,
                          allow_eager_init: bool = True) -> Dict[str, T]:
        self._assert_bean_factory_active()
        return self.get_bean_factory().get_beans_of_type(
            bean_type, include_non_singletons, allow_eager_init
        )

    def get_bean_names_for_type(self, bean_type: type, include_non_singletons: bool = True,
                                allow_eager_init: bool = True) -> List[str]:
        self._assert_bean_factory_active()
        return self.get_bean_factory().get_bean_names_for_type(
            bean_type, include_non_singletons, allow_eager_init
        )

    def contains_bean(self, name: str) -> bool:
        return self.has_bean_factory() and self.get_bean_factory().contains_bean(name)

    def contains_definition(self, name: str) -> bool:
        return self.has_bean_factory() and self.get_bean_factory().contains_definition(name)

    @property
    def definition_names(self) -> List[str]:
        if not self.has_bean_factory():
            return []
        return self.get_bean_factory().definition_names

    def is_singleton(self, name: str) -> bool:
        self._assert_bean_factory_active()
        return self.get_bean_factory().is_singleton(name)

    def is_prototype(self, name: str) -> bool:
        self._assert_bean_factory_active()
        return self.get_bean_factory().is_prototype(name)

    def get_type(self, name: str) -> Optional[type]:
        self._assert_bean_factory_active()
        return self.get_bean_factory().get_type(name)

    def get_aliases(self, name: str) -> List[str]:
        self._assert_bean_factory_active()
        return self.get_bean_factory().get_aliases(name)

    def get_message(self, code: str, args: Sequence[Any] = (),
                    default: Optional[str] = None) -> str:
        if self.message_source is None:
            raise ContextStateError(
                f"MessageSource not initialized - call 'refresh' before accessing "
                f"messages via the context: {self.display_name}"
            )
        return self.message_source.get_message(code, args, default)

    def __repr__(self) -> str:
        return (f"<{type(self).__name__} {self.display_name} "
                f"active={self._active} closed={self._closed}>")
