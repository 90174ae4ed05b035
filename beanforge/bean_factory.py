"""
DefaultBeanFactory

This module provides the bean factory: the definition store and the
singleton registry combined with the instance pipeline that turns a
definition into a managed object. It is responsible for:

- Looking beans up by name or type (primary candidates, aliases, parent
  factories, resolvable dependencies)
- Creating beans: instantiation, property population, aware callbacks,
  instance hooks, init methods
- Exposing early references so that field-level cycles between singletons
  resolve to the final (possibly wrapped) object
- Dispatching to singleton, prototype and custom scopes
- Exposing the products of factory beans, and the factories themselves
  under "&name"
- Registering destruction callbacks

The factory is normally owned by an application context, which rebuilds it
on every refresh.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Type, TypeVar, Union

from .creation_context import creating, current_creation
from .definition import BeanDefinition, BeanReference
from .definition_registry import DefinitionRegistry
from .disposable import DisposableBeanAdapter
from .exceptions import (
    BeanCreationError,
    BeanCurrentlyInCreationError,
    BeanIsAbstractError,
    BeanIsNotAFactoryError,
    BeanNotOfRequiredTypeError,
    BeansError,
    NoSuchBeanDefinitionError,
    NoUniqueBeanDefinitionError,
    UnsatisfiedDependencyError,
)
from .hooks import (
    DestructionAwareInstanceHook,
    InstanceHook,
    InstantiationAwareInstanceHook,
    MergedDefinitionHook,
    SmartInstantiationAwareInstanceHook,
)
from .instantiation import InstantiationStrategy, unwrap_optional
from .lifecycle import (
    BeanFactoryAware,
    BeanNameAware,
    FactoryBean,
    InitializingBean,
    SmartFactoryBean,
    SmartInitializingSingleton,
)
from .scope import Scope, ScopeRegistry
from .singleton_registry import MISSING, SingletonBeanRegistry

logger = logging.getLogger(__name__)

T = TypeVar('T')

#: Prefix of a bean name that asks for a FactoryBean itself, not its product
FACTORY_BEAN_PREFIX = '&'


def is_factory_dereference(name: str) -> bool:
    return name.startswith(FACTORY_BEAN_PREFIX)


class _HookCache(NamedTuple):
    """Instance hooks grouped by capability, rebuilt when the hook list changes."""
    instantiation_aware: List[InstantiationAwareInstanceHook]
    smart_instantiation_aware: List[SmartInstantiationAwareInstanceHook]
    destruction_aware: List[DestructionAwareInstanceHook]
    merged_definition: List[MergedDefinitionHook]


class DefaultBeanFactory(DefinitionRegistry, SingletonBeanRegistry):
    """Bean factory with definitions, singletons, scopes and instance hooks.

    Attributes:
        parent_bean_factory: Factory consulted for beans unknown to this one
        allow_circular_references: Expose early references of singletons in
            creation so that field-level cycles resolve
        allow_raw_injection_despite_wrapping: Accept a bean whose early
            reference was injected raw although initialization wrapped it
        instantiation_strategy: Constructs beans and sets their properties

    Example::

        factory = DefaultBeanFactory()
        factory.register_definition(BeanDefinition("db", Database))
        factory.register_definition(
            BeanDefinition("repo", Repository, constructor_args=[ref("db")])
        )
        repo = factory.get_bean("repo")
    """

    def __init__(
        self,
        parent_bean_factory: Optional['DefaultBeanFactory'] = None,
        allow_definition_overriding: bool = False,
        allow_circular_references: bool = True,
        allow_raw_injection_despite_wrapping: bool = False,
        instantiation_strategy: Optional[InstantiationStrategy] = None,
    ):
        DefinitionRegistry.__init__(self, allow_definition_overriding)
        SingletonBeanRegistry.__init__(self)
        self.parent_bean_factory = parent_bean_factory
        self.allow_circular_references = allow_circular_references
        self.allow_raw_injection_despite_wrapping = allow_raw_injection_despite_wrapping
        self.instantiation_strategy = instantiation_strategy or InstantiationStrategy()
        self._scopes = ScopeRegistry()
        self._instance_hooks: List[InstanceHook] = []
        self._hook_cache: Optional[_HookCache] = None
        self._hooks_lock = threading.Lock()
        self._resolvable_dependencies: Dict[type, Any] = {}
        self._already_created: Dict[str, None] = {}
        self._factory_bean_objects: Dict[str, Any] = {}
        self._factory_object_locks: Dict[str, Any] = {}

    # Instance hooks

    def add_instance_hook(self, hook: InstanceHook) -> None:
        """Append ``hook`` to the instance pipeline.

        A hook that is already registered is moved to the end. The list is
        replaced rather than mutated, so creations in progress keep the list
        they started with.
        """
        with self._hooks_lock:
            hooks = [h for h in self._instance_hooks if h is not hook]
            hooks.append(hook)
            self._instance_hooks = hooks
            self._hook_cache = None

    def add_instance_hooks(self, hooks: List[InstanceHook]) -> None:
        for hook in hooks:
            self.add_instance_hook(hook)

    @property
    def instance_hooks(self) -> List[InstanceHook]:
        return list(self._instance_hooks)

    @property
    def instance_hook_count(self) -> int:
        return len(self._instance_hooks)

    def _hooks(self) -> _HookCache:
        cache = self._hook_cache
        if cache is None:
            hooks = self._instance_hooks
            cache = _HookCache(
                [h for h in hooks if isinstance(h, InstantiationAwareInstanceHook)],
                [h for h in hooks if isinstance(h, SmartInstantiationAwareInstanceHook)],
                [h for h in hooks if isinstance(h, DestructionAwareInstanceHook)],
                [h for h in hooks if isinstance(h, MergedDefinitionHook)],
            )
            self._hook_cache = cache
        return cache

    # Scopes and resolvable dependencies

    def register_scope(self, name: str, scope: Scope) -> None:
        self._scopes.register_scope(name, scope)

    def get_registered_scope(self, name: str) -> Optional[Scope]:
        return self._scopes.get_scope(name)

    @property
    def registered_scope_names(self) -> List[str]:
        return self._scopes.scope_names

    def register_resolvable_dependency(self, dependency_type: type, value: Any) -> None:
        """Make ``value`` injectable by type without registering it as a bean."""
        self._resolvable_dependencies[dependency_type] = value

    # Lookup

    def get_bean(self, name_or_type: Union[str, Type[T]],
                 required_type: Optional[Type[T]] = None) -> Any:
        """Return the bean registered under a name, or the unique bean of a type.

        Args:
            name_or_type: Bean name (or alias), or a type to look up
            required_type: Type the bean must be an instance of (name lookups)

        Raises:
            NoSuchBeanDefinitionError: When no bean matches
            NoUniqueBeanDefinitionError: When several beans of the type match
                and none is primary
            BeanCreationError: When the bean could not be created
            BeanNotOfRequiredTypeError: When the bean is not a ``required_type``
        """
        if isinstance(name_or_type, str):
            return self._do_get_bean(name_or_type, required_type)
        resolved = self._resolve_named_bean(name_or_type)
        if resolved is None:
            raise NoSuchBeanDefinitionError(
                f"No qualifying bean of type '{name_or_type.__name__}' available",
                bean_type=name_or_type,
            )
        return resolved[1]

    def transformed_bean_name(self, name: str) -> str:
        """Strip the factory dereference prefix and resolve aliases."""
        while is_factory_dereference(name):
            name = name[len(FACTORY_BEAN_PREFIX):]
        return self.canonical_name(name)

    def _do_get_bean(self, name: str, required_type: Optional[type] = None) -> Any:
        bean_name = self.transformed_bean_name(name)
        shared = self.lookup_singleton(bean_name)
        if shared is not MISSING:
            bean = self._object_for_bean_instance(shared, name, bean_name)
        else:
            if not self.contains_definition(bean_name) and self.parent_bean_factory is not None:
                return self.parent_bean_factory.get_bean(name, required_type)

            mbd = self.get_merged_definition(bean_name)
            if mbd.abstract:
                raise BeanIsAbstractError(bean_name)
            self._already_created[bean_name] = None

            for dependency in mbd.depends_on:
                dependency = self.canonical_name(dependency)
                if self.is_dependent(bean_name, dependency):
                    raise BeanCreationError(
                        bean_name,
                        f"Circular depends-on relationship between "
                        f"'{bean_name}' and '{dependency}'"
                    )
                self.register_dependent_bean(dependency, bean_name)
                try:
                    self.get_bean(dependency)
                except NoSuchBeanDefinitionError as e:
                    raise BeanCreationError(
                        bean_name, f"'{bean_name}' depends on missing bean '{dependency}'"
                    ) from e

            if mbd.is_singleton:
                instance = self.get_singleton(bean_name, lambda: self.create_bean(bean_name, mbd))
            elif mbd.is_prototype:
                instance = self._create_scoped_instance(bean_name, mbd)
            else:
                scope = self._scopes.get_scope(mbd.resolved_scope)
                if scope is None:
                    raise BeanCreationError(
                        bean_name, f"No scope registered for scope name '{mbd.resolved_scope}'"
                    )
                instance = scope.get(bean_name, lambda: self._create_scoped_instance(bean_name, mbd))
            bean = self._object_for_bean_instance(instance, name, bean_name)

        if required_type is not None and not isinstance(bean, required_type):
            raise BeanNotOfRequiredTypeError(name, required_type, type(bean))
        return bean

    # Factory beans

    def _object_for_bean_instance(self, instance: Any, name: str, bean_name: str) -> Any:
        """Return the instance itself, or the product when it is a FactoryBean.

        Raises:
            BeanIsNotAFactoryError: When ``name`` is a factory dereference of
                a bean that is not a FactoryBean
        """
        if is_factory_dereference(name):
            if not isinstance(instance, FactoryBean):
                raise BeanIsNotAFactoryError(bean_name, type(instance))
            return instance
        if not isinstance(instance, FactoryBean):
            return instance
        return self._get_object_from_factory_bean(instance, bean_name)

    def _get_object_from_factory_bean(self, factory: FactoryBean, bean_name: str) -> Any:
        if not (factory.is_singleton() and self.contains_singleton(bean_name)):
            return self._create_factory_bean_object(factory, bean_name)
        obj = self._factory_bean_objects.get(bean_name, MISSING)
        if obj is not MISSING:
            return obj
        with self._registry_lock:
            lock = self._factory_object_locks.setdefault(bean_name, threading.RLock())
        with lock:
            obj = self._factory_bean_objects.get(bean_name, MISSING)
            if obj is MISSING:
                obj = self._create_factory_bean_object(factory, bean_name)
                with self._registry_lock:
                    if self.contains_singleton(bean_name):
                        self._factory_bean_objects[bean_name] = obj
            return obj

    def _create_factory_bean_object(self, factory: FactoryBean, bean_name: str) -> Any:
        logger.debug("Obtaining object from FactoryBean '%s'", bean_name)
        try:
            obj = factory.get_object()
        except BeansError:
            raise
        except Exception as e:
            raise BeanCreationError(
                bean_name, f"FactoryBean threw exception on object creation: {type(e).__name__}: {e}"
            ) from e
        if obj is None:
            return None
        try:
            return self.apply_after_init(obj, bean_name)
        except BeansError:
            raise
        except Exception as e:
            raise BeanCreationError(
                bean_name, f"Post-processing of FactoryBean's object failed: {type(e).__name__}: {e}"
            ) from e

    def _factory_object_type(self, bean_name: str, factory: FactoryBean) -> Optional[type]:
        object_type = factory.get_object_type()
        if object_type is None:
            obj = self._factory_bean_objects.get(bean_name)
            if obj is not None:
                object_type = type(obj)
        return object_type

    def is_factory_bean(self, name: str) -> bool:
        """Whether the bean ``name`` is a FactoryBean, without creating it."""
        bean_name = self.transformed_bean_name(name)
        instance = self._singletons.get(bean_name, MISSING)
        if instance is not MISSING:
            return isinstance(instance, FactoryBean)
        if not self.contains_definition(bean_name):
            if self.parent_bean_factory is not None:
                return self.parent_bean_factory.is_factory_bean(name)
            return False
        predicted = self.predict_bean_type(bean_name, self.get_merged_definition(bean_name))
        return predicted is not None and issubclass(predicted, FactoryBean)

    def _create_scoped_instance(self, bean_name: str, mbd: BeanDefinition) -> Any:
        ctx = current_creation()
        if ctx is not None and bean_name in ctx:
            raise BeanCurrentlyInCreationError(
                bean_name,
                f"Requested bean is currently in creation: unresolvable circular "
                f"reference {ctx.describe_cycle(bean_name)}"
            )
        return self.create_bean(bean_name, mbd)

    def _resolve_named_bean(self, bean_type: type) -> Optional[Tuple[str, Any]]:
        candidates = [
            name for name in self.get_bean_names_for_type(bean_type)
            if not self.contains_definition(self.transformed_bean_name(name))
            or self.get_merged_definition(self.transformed_bean_name(name)).autowire_candidate
        ]
        if len(candidates) > 1:
            primary = [
                name for name in candidates
                if self.contains_definition(self.transformed_bean_name(name))
                and self.get_merged_definition(self.transformed_bean_name(name)).primary
            ]
            if len(primary) != 1:
                raise NoUniqueBeanDefinitionError(bean_type, candidates)
            candidates = primary
        if candidates:
            return candidates[0], self._do_get_bean(candidates[0], bean_type)
        if self.parent_bean_factory is not None:
            resolved = self.parent_bean_factory._resolve_named_bean(bean_type)
            if resolved is not None:
                return None, resolved[1]
        return None

    def resolve_dependency(self, dependency_type: Any,
                           requesting_bean_name: Optional[str] = None) -> Any:
        """Resolve an injection point by type.

        Beans of the type are preferred; resolvable dependencies (such as the
        factory itself) are used when no bean matches.

        Raises:
            NoSuchBeanDefinitionError: When nothing matches
            NoUniqueBeanDefinitionError: When several non-primary beans match
        """
        if not isinstance(dependency_type, type):
            raise UnsatisfiedDependencyError(
                requesting_bean_name, f"Cannot autowire non-class type {dependency_type!r}"
            )
        resolved = self._resolve_named_bean(dependency_type)
        if resolved is not None:
            name, bean = resolved
            if name is not None and requesting_bean_name is not None:
                self.register_dependent_bean(self.transformed_bean_name(name), requesting_bean_name)
            return bean
        for registered_type, value in self._resolvable_dependencies.items():
            if isinstance(value, dependency_type) and (
                    issubclass(dependency_type, registered_type)
                    or issubclass(registered_type, dependency_type)):
                return value
        raise NoSuchBeanDefinitionError(
            f"No qualifying bean of type '{dependency_type.__name__}' available: "
            f"expected at least 1 bean which qualifies as autowire candidate",
            bean_type=dependency_type,
        )

    def get_bean_names_for_type(self, bean_type: type, include_non_singletons: bool = True,
                                allow_eager_init: bool = True) -> List[str]:
        """Return the names of beans matching ``bean_type``, in registration order.

        Matching uses the existing instance when there is one, and the
        predicted type otherwise. Abstract definitions never match. A factory
        bean matches by the type of its product; when only the factory class
        matches, its name is returned with the ``"&"`` prefix.

        Args:
            bean_type: Type to match
            include_non_singletons: Also match prototype and custom-scoped beans
            allow_eager_init: Create a singleton whose type cannot be predicted
                (an unannotated factory callable, or a FactoryBean) to find
                out its type
        """
        result = []
        for name in self.definition_names:
            mbd = self.get_merged_definition(name)
            if mbd.abstract:
                continue
            if not include_non_singletons and not mbd.is_singleton:
                continue
            matched = self._match_definition(name, mbd, bean_type, allow_eager_init)
            if matched is not None:
                result.append(matched)
        for name in self.singleton_names:
            if name in result or self.contains_definition(name):
                continue
            instance = self._singletons.get(name, MISSING)
            if instance is not MISSING:
                matched = self._match_instance(name, instance, bean_type)
                if matched is not None:
                    result.append(matched)
        return result

    def _match_definition(self, name: str, mbd: BeanDefinition, bean_type: type,
                          allow_eager_init: bool) -> Optional[str]:
        instance = self._singletons.get(name, MISSING)
        if instance is MISSING:
            predicted = self.predict_bean_type(name, mbd)
            eager = (allow_eager_init and mbd.is_singleton and not mbd.is_lazy_init
                     and not self.is_singleton_currently_in_creation(name))
            if predicted is not None and not issubclass(predicted, FactoryBean):
                return name if issubclass(predicted, bean_type) else None
            if not eager:
                if predicted is not None and issubclass(predicted, bean_type):
                    return FACTORY_BEAN_PREFIX + name
                return None
            if predicted is None:
                self._do_get_bean(name)
            else:
                self._do_get_bean(FACTORY_BEAN_PREFIX + name)
            instance = self._singletons.get(name, MISSING)
            if instance is MISSING:
                return None
        return self._match_instance(name, instance, bean_type)

    def _match_instance(self, name: str, instance: Any, bean_type: type) -> Optional[str]:
        if isinstance(instance, FactoryBean):
            object_type = self._factory_object_type(name, instance)
            if object_type is not None and issubclass(object_type, bean_type):
                return name
            if isinstance(instance, bean_type):
                return FACTORY_BEAN_PREFIX + name
            return None
        return name if isinstance(instance, bean_type) else None

    def get_beans_of_type(self, bean_type: Type[T], include_non_singletons: bool = True,
                          allow_eager_init: bool = True) -> Dict[str, T]:
        return {
            name: self._do_get_bean(name)
            for name in self.get_bean_names_for_type(
                bean_type, include_non_singletons, allow_eager_init
            )
        }

    def predict_bean_type(self, bean_name: str, mbd: BeanDefinition) -> Optional[type]:
        for hook in self._hooks().smart_instantiation_aware:
            predicted = hook.predict_bean_type(mbd.bean_class, bean_name)
            if predicted is not None:
                return predicted
        if mbd.factory is not None:
            predicted = self.instantiation_strategy.predict_return_type(mbd.factory)
            if predicted is not None:
                return predicted
        return mbd.bean_class

    def get_type(self, name: str) -> Optional[type]:
        """Return the type of the bean ``name`` without creating it.

        For a factory bean this is the type of its product, which is None
        when the factory has not been created yet or cannot tell.
        """
        bean_name = self.transformed_bean_name(name)
        instance = self._singletons.get(bean_name, MISSING)
        if instance is not MISSING:
            if isinstance(instance, FactoryBean) and not is_factory_dereference(name):
                return self._factory_object_type(bean_name, instance)
            return type(instance)
        if not self.contains_definition(bean_name):
            if self.parent_bean_factory is not None:
                return self.parent_bean_factory.get_type(name)
            raise NoSuchBeanDefinitionError(f"No bean named '{name}' available", bean_name=name)
        predicted = self.predict_bean_type(bean_name, self.get_merged_definition(bean_name))
        if (predicted is not None and issubclass(predicted, FactoryBean)
                and not is_factory_dereference(name)):
            return None
        return predicted

    def is_type_match(self, name: str, type_to_match: type) -> bool:
        bean_name = self.transformed_bean_name(name)
        instance = self._singletons.get(bean_name, MISSING)
        if instance is not MISSING:
            if isinstance(instance, FactoryBean) and not is_factory_dereference(name):
                object_type = self._factory_object_type(bean_name, instance)
                return object_type is not None and issubclass(object_type, type_to_match)
            return isinstance(instance, type_to_match)
        bean_type = self.get_type(name)
        return bean_type is not None and issubclass(bean_type, type_to_match)

    def contains_bean(self, name: str) -> bool:
        bean_name = self.transformed_bean_name(name)
        if self.contains_singleton(bean_name) or self.contains_definition(bean_name):
            return not is_factory_dereference(name) or self.is_factory_bean(name)
        return self.parent_bean_factory is not None and self.parent_bean_factory.contains_bean(name)

    def is_singleton(self, name: str) -> bool:
        bean_name = self.transformed_bean_name(name)
        instance = self._singletons.get(bean_name, MISSING)
        if isinstance(instance, FactoryBean) and not is_factory_dereference(name):
            return instance.is_singleton()
        if self.contains_definition(bean_name):
            return self.get_merged_definition(bean_name).is_singleton
        if instance is not MISSING:
            return True
        if self.parent_bean_factory is not None:
            return self.parent_bean_factory.is_singleton(name)
        raise NoSuchBeanDefinitionError(f"No bean named '{name}' available", bean_name=name)

    def is_prototype(self, name: str) -> bool:
        bean_name = self.transformed_bean_name(name)
        instance = self._singletons.get(bean_name, MISSING)
        if isinstance(instance, FactoryBean) and not is_factory_dereference(name):
            if isinstance(instance, SmartFactoryBean):
                return instance.is_prototype()
            return not instance.is_singleton()
        if self.contains_definition(bean_name):
            return self.get_merged_definition(bean_name).is_prototype
        if instance is not MISSING:
            return False
        if self.parent_bean_factory is not None:
            return self.parent_bean_factory.is_prototype(name)
        raise NoSuchBeanDefinitionError(f"No bean named '{name}' available", bean_name=name)

    # Creation

    def create_bean(self, bean_name: str, mbd: BeanDefinition) -> Any:
        """Run the full creation pipeline for ``bean_name``.

        Errors that are not container errors are wrapped in BeanCreationError
        carrying the failing bean name.
        """
        logger.debug("Creating instance of bean '%s'", bean_name)
        with creating(bean_name):
            try:
                bean = self._resolve_before_instantiation(bean_name, mbd)
                if bean is not None:
                    return bean
                return self._do_create_bean(bean_name, mbd)
            except BeansError:
                raise
            except Exception as e:
                raise BeanCreationError(bean_name, f"{type(e).__name__}: {e}") from e

    def _resolve_before_instantiation(self, bean_name: str, mbd: BeanDefinition) -> Any:
        for hook in self._hooks().instantiation_aware:
            bean = hook.before_instantiation(mbd.bean_class, bean_name)
            if bean is not None:
                return self.apply_after_init(bean, bean_name)
        return None

    def _do_create_bean(self, bean_name: str, mbd: BeanDefinition) -> Any:
        instance = self._create_bean_instance(bean_name, mbd)

        for hook in self._hooks().merged_definition:
            hook.post_process_merged_definition(mbd, type(instance), bean_name)

        early_exposure = (
            mbd.is_singleton
            and self.allow_circular_references
            and self.is_singleton_currently_in_creation(bean_name)
        )
        if early_exposure:
            logger.debug(
                "Eagerly caching bean '%s' to allow for resolving potential circular references",
                bean_name
            )
            self.add_singleton_factory(
                bean_name, lambda: self._get_early_bean_reference(bean_name, instance)
            )

        self._populate_bean(bean_name, mbd, instance)
        exposed = self._initialize_bean(bean_name, instance, mbd)

        if early_exposure:
            early = self.lookup_singleton(bean_name, allow_early_reference=False)
            if early is not MISSING:
                if exposed is instance or exposed is early:
                    exposed = early
                elif not self.allow_raw_injection_despite_wrapping:
                    actual = [
                        name for name in self.get_dependent_beans(bean_name)
                        if name in self._already_created
                    ]
                    if actual:
                        raise BeanCurrentlyInCreationError(
                            bean_name,
                            f"Bean with name '{bean_name}' has been injected into other "
                            f"beans [{', '.join(actual)}] in its raw version as part of a "
                            f"circular reference, but has eventually been wrapped. This "
                            f"means that said other beans do not use the final version "
                            f"of the bean."
                        )

        self._register_disposable_bean_if_necessary(bean_name, exposed, mbd)
        return exposed

    def _get_early_bean_reference(self, bean_name: str, bean: Any) -> Any:
        exposed = bean
        for hook in self._hooks().smart_instantiation_aware:
            exposed = hook.get_early_bean_reference(exposed, bean_name)
        return exposed

    def _create_bean_instance(self, bean_name: str, mbd: BeanDefinition) -> Any:
        constructor: Optional[Callable[..., Any]] = None
        for hook in self._hooks().smart_instantiation_aware:
            constructor = hook.determine_constructor(mbd.bean_class, bean_name)
            if constructor is not None:
                break
        if constructor is None:
            constructor = mbd.factory or mbd.bean_class
        if constructor is None:
            raise BeanCreationError(bean_name, "Neither bean class nor factory specified")

        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        if mbd.constructor_args:
            args = [self._resolve_value(bean_name, value) for value in mbd.constructor_args]
        elif mbd.autowire:
            kwargs = self._autowire_arguments(bean_name, constructor)
        return self.instantiation_strategy.instantiate(constructor, args, kwargs, bean_name)

    def _autowire_arguments(self, bean_name: str, constructor: Callable[..., Any]) -> Dict[str, Any]:
        kwargs = {}
        for param in self.instantiation_strategy.constructor_parameters(constructor, bean_name):
            if param.type is None:
                continue
            optional_type = unwrap_optional(param.type)
            target = optional_type if optional_type is not None else param.type
            try:
                kwargs[param.name] = self.resolve_dependency(target, bean_name)
            except NoUniqueBeanDefinitionError as e:
                raise UnsatisfiedDependencyError(
                    bean_name,
                    f"Unsatisfied dependency expressed through constructor parameter "
                    f"'{param.name}': {e}"
                ) from e
            except NoSuchBeanDefinitionError as e:
                if param.has_default:
                    continue
                if optional_type is not None:
                    kwargs[param.name] = None
                    continue
                raise UnsatisfiedDependencyError(
                    bean_name,
                    f"Unsatisfied dependency expressed through constructor parameter "
                    f"'{param.name}': {e}"
                ) from e
        return kwargs

    def _resolve_value(self, bean_name: str, value: Any) -> Any:
        """Resolve BeanReference values, also inside lists, tuples and dicts."""
        if isinstance(value, BeanReference):
            if isinstance(value.target, str):
                bean = self.get_bean(value.target)
                self.register_dependent_bean(self.canonical_name(value.target), bean_name)
                return bean
            return self.resolve_dependency(value.target, bean_name)
        if isinstance(value, list):
            return [self._resolve_value(bean_name, v) for v in value]
        if isinstance(value, tuple):
            return tuple(self._resolve_value(bean_name, v) for v in value)
        if isinstance(value, dict):
            return {k: self._resolve_value(bean_name, v) for k, v in value.items()}
        return value

    def _populate_bean(self, bean_name: str, mbd: BeanDefinition, bean: Any) -> None:
        hooks = self._hooks().instantiation_aware
        for hook in hooks:
            if not hook.after_instantiation(bean, bean_name):
                return
        properties = dict(mbd.property_values)
        for hook in hooks:
            processed = hook.process_properties(properties, bean, bean_name)
            if processed is not None:
                properties = processed
        for name, value in properties.items():
            resolved = self._resolve_value(bean_name, value)
            self.instantiation_strategy.set_property(bean, name, resolved, bean_name)

    def _initialize_bean(self, bean_name: str, bean: Any, mbd: BeanDefinition) -> Any:
        self._invoke_aware_methods(bean_name, bean)
        wrapped = self.apply_before_init(bean, bean_name)
        self._invoke_init_methods(bean_name, wrapped, mbd)
        return self.apply_after_init(wrapped, bean_name)

    def _invoke_aware_methods(self, bean_name: str, bean: Any) -> None:
        if isinstance(bean, BeanNameAware):
            bean.set_bean_name(bean_name)
        if isinstance(bean, BeanFactoryAware):
            bean.set_bean_factory(self)

    def _invoke_init_methods(self, bean_name: str, bean: Any, mbd: BeanDefinition) -> None:
        is_initializing = isinstance(bean, InitializingBean)
        if is_initializing:
            logger.debug("Invoking after_properties_set() on bean with name '%s'", bean_name)
            bean.after_properties_set()
        method_name = mbd.init_method_name
        if method_name and not (is_initializing and method_name == 'after_properties_set'):
            method = getattr(bean, method_name, None)
            if not callable(method):
                raise BeanCreationError(
                    bean_name, f"Could not find an init method named '{method_name}'"
                )
            logger.debug("Invoking init method '%s' on bean with name '%s'", method_name, bean_name)
            method()

    def apply_before_init(self, bean: Any, bean_name: str) -> Any:
        result = bean
        for hook in self._instance_hooks:
            current = hook.before_init(result, bean_name)
            if current is None:
                return result
            result = current
        return result

    def apply_after_init(self, bean: Any, bean_name: str) -> Any:
        result = bean
        for hook in self._instance_hooks:
            current = hook.after_init(result, bean_name)
            if current is None:
                return result
            result = current
        return result

    def _register_disposable_bean_if_necessary(self, bean_name: str, bean: Any,
                                               mbd: BeanDefinition) -> None:
        if mbd.is_prototype:
            return
        hooks = self._hooks().destruction_aware
        if not DisposableBeanAdapter.has_destruction_callbacks(bean, mbd, hooks):
            return
        adapter = DisposableBeanAdapter(bean, bean_name, mbd, hooks)
        if mbd.is_singleton:
            self.register_disposable_bean(bean_name, adapter)
        else:
            scope = self._scopes.get_scope(mbd.resolved_scope)
            if scope is None:
                raise BeanCreationError(
                    bean_name, f"No scope registered for scope name '{mbd.resolved_scope}'"
                )
            scope.register_destruction_callback(bean_name, adapter)

    # Refresh support

    def pre_instantiate_singletons(self) -> None:
        """Create every non-abstract, non-lazy singleton, in registration order.

        Factory beans are created without their product, unless they are a
        SmartFactoryBean asking for eager initialization. Afterwards
        ``after_singletons_instantiated()`` is called on every singleton
        implementing SmartInitializingSingleton.
        """
        names = self.definition_names
        logger.debug("Pre-instantiating singletons in %r: %s", self, names)
        for name in names:
            mbd = self.get_merged_definition(name)
            if mbd.abstract or not mbd.is_singleton or mbd.is_lazy_init:
                continue
            if self.is_factory_bean(name):
                factory = self._do_get_bean(FACTORY_BEAN_PREFIX + name)
                if isinstance(factory, SmartFactoryBean) and factory.is_eager_init():
                    self._do_get_bean(name)
            else:
                self._do_get_bean(name)
        for name in names:
            instance = self._singletons.get(name)
            if isinstance(instance, SmartInitializingSingleton):
                instance.after_singletons_instantiated()

    def clear_metadata_cache(self) -> None:
        """Forget merged definitions of beans that have not been created yet."""
        with self._definition_lock:
            for name in list(self._merged):
                if name not in self._already_created:
                    del self._merged[name]

    def _reset_definition(self, name: str) -> None:
        super()._reset_definition(name)
        self.destroy_singleton(name)
        for hook in self._hooks().merged_definition:
            hook.reset_definition(name)

    def _get_parent_definition(self, definition: BeanDefinition) -> BeanDefinition:
        parent_name = self.canonical_name(definition.parent_name)
        if (parent_name == definition.name or not self.contains_definition(parent_name)) \
                and self.parent_bean_factory is not None:
            return self.parent_bean_factory.get_merged_definition(parent_name)
        return super()._get_parent_definition(definition)

    # Destruction

    def destroy_bean(self, bean_name: str, bean: Any) -> None:
        """Run the destruction callbacks of a bean the caller owns (e.g. a prototype)."""
        DisposableBeanAdapter(
            bean, bean_name, self.get_merged_definition(bean_name), self._hooks().destruction_aware
        ).destroy()

    def destroy_scoped_bean(self, name: str) -> None:
        """Remove the current instance of a custom-scoped bean and destroy it.

        Raises:
            ValueError: When the bean is a singleton or a prototype
        """
        bean_name = self.canonical_name(name)
        mbd = self.get_merged_definition(bean_name)
        if mbd.is_singleton or mbd.is_prototype:
            raise ValueError(
                f"Bean name '{name}' does not correspond to an object in a mutable scope"
            )
        scope = self._scopes.get_scope(mbd.resolved_scope)
        if scope is None:
            raise ValueError(f"No scope registered for scope name '{mbd.resolved_scope}'")
        instance = scope.remove(bean_name)
        if instance is not None:
            self.destroy_bean(bean_name, instance)

    def remove_singleton(self, name: str) -> None:
        with self._registry_lock:
            super().remove_singleton(name)
            self._factory_bean_objects.pop(name, None)
            self._factory_object_locks.pop(name, None)

    def destroy_singletons(self) -> None:
        super().destroy_singletons()
        with self._registry_lock:
            self._factory_bean_objects.clear()
            self._factory_object_locks.clear()
        self._already_created.clear()

    def __repr__(self) -> str:
        return f"<DefaultBeanFactory defining beans [{', '.join(self.definition_names)}]>"
