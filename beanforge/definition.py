"""
Definition

Data classes describing how a bean is constructed and managed
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Type, Union

from .exceptions import BeanDefinitionStoreError

SCOPE_SINGLETON = "singleton"
SCOPE_PROTOTYPE = "prototype"

# Destroy method name that resolves to a public close() or shutdown() method
INFER_METHOD = "(inferred)"


class BeanRole(Enum):
    """Role hint of a bean definition"""
    APPLICATION = 0
    SUPPORT = 1
    INFRASTRUCTURE = 2


@dataclass(frozen=True)
class BeanReference:
    """Reference to another bean, resolved when the owning bean is created.

    Attributes:
        target: Bean name, or a type for lookup by type
    """
    target: Union[str, Type]

    def __str__(self) -> str:
        if isinstance(self.target, type):
            return f"<{self.target.__name__}>"
        return f"<{self.target}>"


def ref(target: Union[str, Type]) -> BeanReference:
    """Shorthand for ``BeanReference(target)``."""
    return BeanReference(target)


@dataclass
class BeanDefinition:
    """Declarative description of a managed bean.

    Fields left as ``None`` are inherited from the parent definition when
    ``parent_name`` is set. Once frozen, assigning any attribute raises
    ``BeanDefinitionStoreError``.

    Attributes:
        name: Unique bean name
        bean_class: Class to instantiate (also used for type lookup)
        factory: Callable producing the instance, used instead of bean_class
        scope: "singleton", "prototype" or a registered custom scope name
        depends_on: Beans that must be created before and destroyed after this one
        lazy_init: Skip creation during refresh; create on first lookup
        primary: Preferred candidate when several beans match a type
        autowire_candidate: Whether lookups by type may return this bean
        role: Role hint, infrastructure beans are excluded from diagnostics
        init_method_name: Method called after properties are set
        destroy_method_name: Method called on destruction
        constructor_args: Positional arguments, may contain BeanReference values
        property_values: Attributes set after construction, may contain BeanReference values
        autowire: Resolve constructor parameters by their type hints
        parent_name: Parent definition to inherit unset fields from
        abstract: Template definition that is never instantiated itself
    """
    name: str
    bean_class: Optional[Type] = None
    factory: Optional[Callable[..., Any]] = None
    scope: Optional[str] = None
    depends_on: List[str] = field(default_factory=list)
    lazy_init: Optional[bool] = None
    primary: bool = False
    autowire_candidate: bool = True
    role: BeanRole = BeanRole.APPLICATION
    init_method_name: Optional[str] = None
    destroy_method_name: Optional[str] = None
    constructor_args: List[Any] = field(default_factory=list)
    property_values: Dict[str, Any] = field(default_factory=dict)
    autowire: bool = False
    parent_name: Optional[str] = None
    abstract: bool = False
    description: Optional[str] = None
    _frozen: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, key: str, value: Any) -> None:
        if self.__dict__.get('_frozen', False):
            raise BeanDefinitionStoreError(
                f"Bean definition '{self.name}' is frozen; cannot set '{key}'"
            )
        super().__setattr__(key, value)

    @property
    def resolved_scope(self) -> str:
        return self.scope or SCOPE_SINGLETON

    @property
    def is_singleton(self) -> bool:
        return self.resolved_scope == SCOPE_SINGLETON

    @property
    def is_prototype(self) -> bool:
        return self.resolved_scope == SCOPE_PROTOTYPE

    @property
    def is_lazy_init(self) -> bool:
        return bool(self.lazy_init)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> 'BeanDefinition':
        """Make this definition read-only. Returns the definition itself."""
        if not self._frozen:
            object.__setattr__(self, 'depends_on', tuple(self.depends_on))
            object.__setattr__(self, 'constructor_args', tuple(self.constructor_args))
            object.__setattr__(self, 'property_values', MappingProxyType(dict(self.property_values)))
            object.__setattr__(self, '_frozen', True)
        return self

    def copy(self) -> 'BeanDefinition':
        """Return an unfrozen deep-enough copy (collections are copied)."""
        return replace(
            self,
            depends_on=list(self.depends_on),
            constructor_args=list(self.constructor_args),
            property_values=dict(self.property_values),
        )

    def merged_with(self, parent: 'BeanDefinition') -> 'BeanDefinition':
        """Return a new definition combining ``parent`` with this child.

        Explicitly set child fields win; property values are merged key by key.
        The result has no parent name.
        """
        merged = parent.copy()
        merged.name = self.name
        merged.parent_name = None
        for attr in ('bean_class', 'factory', 'scope', 'lazy_init',
                     'init_method_name', 'destroy_method_name', 'description'):
            value = getattr(self, attr)
            if value is not None:
                setattr(merged, attr, value)
        if self.factory is None and self.bean_class is not None:
            merged.factory = None
        if self.depends_on:
            merged.depends_on = list(self.depends_on)
        if self.constructor_args:
            merged.constructor_args = list(self.constructor_args)
        merged.property_values.update(self.property_values)
        merged.primary = self.primary
        merged.autowire_candidate = self.autowire_candidate
        merged.role = self.role
        merged.autowire = self.autowire or parent.autowire
        merged.abstract = self.abstract
        return merged
