"""
BeanModule

This module provides a definition loader with a typed DSL. A BeanModule
collects bean definitions, which are loaded into the bean factory of every
refresh of the contexts it is added to.

Key features:
- Subscript syntax: module.single[Type](), module.prototype[Type]() and
  module.scoped("thread")[Type]()
- Constructor autowiring from type hints, for classes and factory callables
- Context manager support for cleaner definition blocks

Example::

    module = BeanModule()
    with module:
        module.single[Database]()
        module.single[Cache](lambda: RedisCache("localhost"), primary=True)
        module.prototype[UserRepository]()
        module.scoped("thread")[RequestContext]()

    context = ApplicationContext(modules=[module])
"""

import re
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Type, TypeVar, Union

from .definition import SCOPE_PROTOTYPE, SCOPE_SINGLETON, BeanDefinition

if TYPE_CHECKING:
    from .definition_registry import DefinitionRegistry

T = TypeVar('T')


def default_bean_name(bean_type: type) -> str:
    """Derive a bean name from a class name: ``HTTPClient`` -> ``http_client``."""
    name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', bean_type.__name__)
    return re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name).lower()


class DefinitionBuilder:
    """Builder behind ``module.single``, ``module.prototype`` and ``module.scoped()``.

    Attributes:
        module: The BeanModule to register definitions to
        scope: Scope of the definitions this builder creates
    """

    def __init__(self, module: 'BeanModule', scope: str):
        self.module = module
        self.scope = scope

    def __getitem__(self, interface: Type[T]) -> Callable[..., BeanDefinition]:
        """Enable subscript syntax: builder[Type](factory_or_class, **options).

        The returned function registers a definition and returns it. Without
        an argument, ``interface`` itself is instantiated. Options are
        BeanDefinition fields (``name``, ``primary``, ``lazy_init``,
        ``depends_on``, ``init_method_name``, ...).

        Example::

            # This syntax:
            module.single[Database](lambda: Database(), lazy_init=True)

            # Is equivalent to:
            register = module.single[Database]
            register(lambda: Database(), lazy_init=True)
        """

        def register(
            factory_or_type: Optional[Union[Callable[..., T], Type[T]]] = None,
            name: Optional[str] = None,
            **options: Any
        ) -> BeanDefinition:
            target = interface if factory_or_type is None else factory_or_type
            options.setdefault('autowire', 'constructor_args' not in options)
            if self.module.lazy_init is not None:
                options.setdefault('lazy_init', self.module.lazy_init)
            if isinstance(target, type):
                definition = BeanDefinition(
                    name or default_bean_name(interface),
                    bean_class=target,
                    scope=None if self.scope == SCOPE_SINGLETON else self.scope,
                    **options
                )
            else:
                definition = BeanDefinition(
                    name or default_bean_name(interface),
                    bean_class=interface,
                    factory=target,
                    scope=None if self.scope == SCOPE_SINGLETON else self.scope,
                    **options
                )
            self.module.add_definition(definition)
            return definition

        return register


class BeanModule:
    """Definition loader with a typed registration DSL.

    Attributes:
        single: Builder for singleton definitions
        prototype: Builder for prototype definitions
        lazy_init: Default ``lazy_init`` of the definitions of this module

    Example::

        module = BeanModule(lazy_init=True)
        with module:
            module.single[Database]()
    """

    def __init__(self, lazy_init: Optional[bool] = None):
        self._definitions: List[BeanDefinition] = []
        self.lazy_init = lazy_init
        self.single = DefinitionBuilder(self, SCOPE_SINGLETON)
        self.prototype = DefinitionBuilder(self, SCOPE_PROTOTYPE)

    def scoped(self, scope_name: str) -> DefinitionBuilder:
        """Return a builder for definitions of the custom scope ``scope_name``.

        Example::

            module.scoped("thread")[RequestContext]()
        """
        return DefinitionBuilder(self, scope_name)

    def __enter__(self) -> 'BeanModule':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        return False

    @property
    def definitions(self) -> List[BeanDefinition]:
        return list(self._definitions)

    def add_definition(self, definition: BeanDefinition) -> None:
        """Add a definition. Duplicate names are checked when the module is loaded."""
        self._definitions.append(definition)

    def load_definitions(self, registry: 'DefinitionRegistry') -> None:
        """Register copies of this module's definitions into ``registry``."""
        registry.load_definitions(definition.copy() for definition in self._definitions)
