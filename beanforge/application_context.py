"""
ApplicationContext

This module provides the refreshable application context. Every refresh
builds a new DefaultBeanFactory and loads into it:

- the definitions registered on the context
- the definitions produced by every definition loader
- the definitions of every BeanModule

Example::

    module = BeanModule()
    with module:
        module.single[Database]()
        module.single[UserRepository]()

    with ApplicationContext(modules=[module]) as context:
        context.refresh()
        repo = context.get[UserRepository]()
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Union

from .bean_factory import DefaultBeanFactory
from .context import AbstractApplicationContext
from .definition import BeanDefinition
from .definition_registry import DefinitionRegistry
from .environment import StandardEnvironment
from .exceptions import ContextStateError
from .instantiation import InstantiationStrategy

logger = logging.getLogger(__name__)

DefinitionLoader = Union[Callable[[DefinitionRegistry], Any], Any]
"""A callable taking the registry, or an object with ``load_definitions(registry)``."""


class ApplicationContext(AbstractApplicationContext):
    """Refreshable application context.

    Attributes:
        allow_definition_overriding: Passed to every bean factory created
        allow_circular_references: Passed to every bean factory created
        allow_raw_injection_despite_wrapping: Passed to every bean factory created
        instantiation_strategy: Passed to every bean factory created

    Example::

        context = ApplicationContext(definitions=[
            BeanDefinition("a", ServiceA),
            BeanDefinition("b", ServiceB, depends_on=["a"]),
        ])
        context.refresh()
        b = context.get_bean("b")
        context.close()
    """

    def __init__(
        self,
        definitions: Optional[Iterable[BeanDefinition]] = None,
        loaders: Optional[Iterable[DefinitionLoader]] = None,
        modules: Optional[Iterable[Any]] = None,
        parent: Optional[AbstractApplicationContext] = None,
        environment: Optional[StandardEnvironment] = None,
        display_name: Optional[str] = None,
        allow_definition_overriding: bool = False,
        allow_circular_references: bool = True,
        allow_raw_injection_despite_wrapping: bool = False,
        instantiation_strategy: Optional[InstantiationStrategy] = None,
    ):
        super().__init__(parent, environment, display_name)
        self.allow_definition_overriding = allow_definition_overriding
        self.allow_circular_references = allow_circular_references
        self.allow_raw_injection_despite_wrapping = allow_raw_injection_despite_wrapping
        self.instantiation_strategy = instantiation_strategy
        self._definitions: List[BeanDefinition] = list(definitions or [])
        self._loaders: List[DefinitionLoader] = list(loaders or [])
        self._loaders.extend(modules or [])
        self._bean_factory: Optional[DefaultBeanFactory] = None

    def register_definition(self, definition: BeanDefinition) -> None:
        """Add a definition, loaded on the next refresh."""
        self._definitions.append(definition)

    def add_loader(self, loader: DefinitionLoader) -> None:
        """Add a definition loader, invoked on the next refresh."""
        self._loaders.append(loader)

    def load_modules(self, modules: Iterable[Any]) -> None:
        """Add BeanModules, loaded on the next refresh."""
        self._loaders.extend(modules)

    def refresh_bean_factory(self) -> None:
        if self._bean_factory is not None:
            self._destroy_beans()
            self.close_bean_factory()
        bean_factory = self.create_bean_factory()
        self.load_bean_definitions(bean_factory)
        self._bean_factory = bean_factory

    def create_bean_factory(self) -> DefaultBeanFactory:
        parent_factory = None
        if self.parent is not None and self.parent.has_bean_factory():
            parent_factory = self.parent.get_bean_factory()
        return DefaultBeanFactory(
            parent_bean_factory=parent_factory,
            allow_definition_overriding=self.allow_definition_overriding,
            allow_circular_references=self.allow_circular_references,
            allow_raw_injection_despite_wrapping=self.allow_raw_injection_despite_wrapping,
            instantiation_strategy=self.instantiation_strategy,
        )

    def load_bean_definitions(self, bean_factory: DefaultBeanFactory) -> None:
        """Load every registered definition, loader and module into ``bean_factory``.

        Definitions are copied, so the ones registered on the context are
        never frozen and can be loaded again by the next refresh.
        """
        bean_factory.load_definitions(definition.copy() for definition in self._definitions)
        for loader in self._loaders:
            if hasattr(loader, 'load_definitions'):
                loader.load_definitions(bean_factory)
            else:
                loader(bean_factory)
        logger.debug(
            "Loaded %d bean definitions for %s", bean_factory.definition_count, self.display_name
        )

    def get_bean_factory(self) -> DefaultBeanFactory:
        if self._bean_factory is None:
            raise ContextStateError(
                "BeanFactory not initialized or already closed - "
                "call 'refresh' before accessing beans via the ApplicationContext"
            )
        return self._bean_factory

    def has_bean_factory(self) -> bool:
        return self._bean_factory is not None

    def close_bean_factory(self) -> None:
        self._bean_factory = None
