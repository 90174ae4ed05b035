"""
Hooks

Extension points invoked by the container while it processes definitions
and instances. Each class is a capability: a hook opts into a capability by
subclassing it and overrides only the callbacks it needs. Every callback has
a no-op default.

Combine with ``PriorityOrdered`` or ``Ordered`` from ``beanforge.ordering``
to control when a hook runs relative to the others.

Factory-level hooks::

    class RegisterExtras(DefinitionRegistryHook):
        def post_process_definition_registry(self, registry):
            registry.register_definition(BeanDefinition("extra", Extra))

Instance-level hooks::

    class Tracing(InstanceHook):
        def after_init(self, bean, bean_name):
            return TracingProxy(bean)
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type

if TYPE_CHECKING:
    from .bean_factory import DefaultBeanFactory
    from .definition import BeanDefinition
    from .definition_registry import DefinitionRegistry


class BeanFactoryHook:
    """Factory-level hook: runs once the definition set is stable.

    May read and modify definitions, but should not create beans.
    """

    def post_process_bean_factory(self, bean_factory: 'DefaultBeanFactory') -> None:
        pass


class DefinitionRegistryHook(BeanFactoryHook):
    """Factory-level hook that may register or remove definitions.

    Runs before every plain ``BeanFactoryHook``. Definitions it registers may
    themselves be registry hooks; those run too before any plain factory hook.
    """

    def post_process_definition_registry(self, registry: 'DefinitionRegistry') -> None:
        pass


class InstanceHook:
    """Instance-level hook around the initialization of every bean.

    Both callbacks may return a replacement object, for example a proxy.
    Returning None keeps the current object and skips the remaining hooks.
    """

    def before_init(self, bean: Any, bean_name: str) -> Any:
        return bean

    def after_init(self, bean: Any, bean_name: str) -> Any:
        return bean


class InstantiationAwareInstanceHook(InstanceHook):
    """Instance hook that also sees instantiation and property population."""

    def before_instantiation(self, bean_class: Optional[Type], bean_name: str) -> Any:
        """Return an object to short-circuit the default instantiation."""
        return None

    def after_instantiation(self, bean: Any, bean_name: str) -> bool:
        """Return False to skip property population for this bean."""
        return True

    def process_properties(self, properties: Dict[str, Any], bean: Any,
                           bean_name: str) -> Optional[Dict[str, Any]]:
        """Return the properties to apply; None keeps them unchanged."""
        return properties


class SmartInstantiationAwareInstanceHook(InstantiationAwareInstanceHook):
    """Instance hook with type prediction, constructor selection and early references."""

    def predict_bean_type(self, bean_class: Optional[Type], bean_name: str) -> Optional[Type]:
        return None

    def determine_constructor(self, bean_class: Optional[Type],
                              bean_name: str) -> Optional[Callable[..., Any]]:
        """Return the callable used to construct the bean, or None for the default."""
        return None

    def get_early_bean_reference(self, bean: Any, bean_name: str) -> Any:
        """Return the object exposed to beans that need ``bean`` before it is initialized.

        A hook that wraps beans in ``after_init`` must wrap them here too, and
        must not wrap them a second time in ``after_init``.
        """
        return bean


class DestructionAwareInstanceHook(InstanceHook):
    """Instance hook called before a bean is destroyed."""

    def before_destruction(self, bean: Any, bean_name: str) -> None:
        pass

    def requires_destruction(self, bean: Any) -> bool:
        return True


class MergedDefinitionHook(InstanceHook):
    """Instance hook that inspects the merged definition before population."""

    def post_process_merged_definition(self, definition: 'BeanDefinition',
                                       bean_type: Type, bean_name: str) -> None:
        pass

    def reset_definition(self, bean_name: str) -> None:
        pass
