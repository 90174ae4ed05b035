# Public API
from .application_context import ApplicationContext
from .bean_factory import FACTORY_BEAN_PREFIX, DefaultBeanFactory
from .context import AbstractApplicationContext
from .definition import (
    INFER_METHOD,
    SCOPE_PROTOTYPE,
    SCOPE_SINGLETON,
    BeanDefinition,
    BeanReference,
    BeanRole,
    ref,
)
from .definition_registry import DefinitionRegistry
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
    listener,
)
from .exceptions import (
    BeanCreationError,
    BeanCreationNotAllowedError,
    BeanCurrentlyInCreationError,
    BeanDefinitionStoreError,
    BeanIsAbstractError,
    BeanIsNotAFactoryError,
    BeanNotOfRequiredTypeError,
    BeansError,
    ContextStateError,
    NoSuchBeanDefinitionError,
    NoUniqueBeanDefinitionError,
    UnsatisfiedDependencyError,
)
from .hooks import (
    BeanFactoryHook,
    DefinitionRegistryHook,
    DestructionAwareInstanceHook,
    InstanceHook,
    InstantiationAwareInstanceHook,
    MergedDefinitionHook,
    SmartInstantiationAwareInstanceHook,
)
from .instantiation import InstantiationStrategy
from .lifecycle import (
    ApplicationContextAware,
    BeanFactoryAware,
    BeanNameAware,
    DisposableBean,
    EnvironmentAware,
    EventPublisherAware,
    FactoryBean,
    InitializingBean,
    Lifecycle,
    SmartFactoryBean,
    SmartInitializingSingleton,
    SmartLifecycle,
)
from .lifecycle_processor import DefaultLifecycleProcessor, LifecycleProcessor
from .message_source import DelegatingMessageSource, MessageSource, StaticMessageSource
from .module import BeanModule
from .multicaster import SimpleEventMulticaster
from .ordering import HIGHEST_PRECEDENCE, LOWEST_PRECEDENCE, Ordered, PriorityOrdered
from .scope import Scope, SimpleMapScope, SimpleThreadScope
from .singleton_registry import SingletonBeanRegistry

__all__ = [
    "ApplicationContext",
    "AbstractApplicationContext",
    "DefaultBeanFactory",
    "DefinitionRegistry",
    "SingletonBeanRegistry",
    "BeanModule",
    "StandardEnvironment",
    "InstantiationStrategy",
    # Definitions
    "BeanDefinition",
    "BeanReference",
    "BeanRole",
    "ref",
    "SCOPE_SINGLETON",
    "SCOPE_PROTOTYPE",
    "INFER_METHOD",
    "FACTORY_BEAN_PREFIX",
    # Hooks
    "BeanFactoryHook",
    "DefinitionRegistryHook",
    "InstanceHook",
    "InstantiationAwareInstanceHook",
    "SmartInstantiationAwareInstanceHook",
    "DestructionAwareInstanceHook",
    "MergedDefinitionHook",
    "Ordered",
    "PriorityOrdered",
    "HIGHEST_PRECEDENCE",
    "LOWEST_PRECEDENCE",
    # Lifecycle
    "BeanNameAware",
    "BeanFactoryAware",
    "ApplicationContextAware",
    "EnvironmentAware",
    "EventPublisherAware",
    "InitializingBean",
    "DisposableBean",
    "FactoryBean",
    "SmartFactoryBean",
    "SmartInitializingSingleton",
    "Lifecycle",
    "SmartLifecycle",
    "LifecycleProcessor",
    "DefaultLifecycleProcessor",
    # Scopes
    "Scope",
    "SimpleMapScope",
    "SimpleThreadScope",
    # Events
    "ApplicationEvent",
    "ApplicationEventPublisher",
    "ApplicationListener",
    "PayloadApplicationEvent",
    "ContextRefreshedEvent",
    "ContextStartedEvent",
    "ContextStoppedEvent",
    "ContextClosedEvent",
    "SimpleEventMulticaster",
    "listener",
    # Messages
    "MessageSource",
    "DelegatingMessageSource",
    "StaticMessageSource",
    # Exceptions
    "BeansError",
    "NoSuchBeanDefinitionError",
    "NoUniqueBeanDefinitionError",
    "BeanDefinitionStoreError",
    "BeanCreationError",
    "BeanCurrentlyInCreationError",
    "BeanCreationNotAllowedError",
    "BeanIsAbstractError",
    "BeanIsNotAFactoryError",
    "UnsatisfiedDependencyError",
    "BeanNotOfRequiredTypeError",
    "ContextStateError",
]

# Version will be dynamically set by poetry-dynamic-versioning
try:
    from ._version import __version__
except ImportError:
    # Fallback for development
    __version__ = '0.0.0'
