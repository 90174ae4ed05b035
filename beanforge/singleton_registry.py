"""
SingletonBeanRegistry

This module provides the keyed cache of shared bean instances. It is
responsible for:

- At most one construction per singleton name, serialized by a per-name
  creation lock so that unrelated beans can be built concurrently
- Early references: a bean whose raw instance exists but whose
  initialization is still running can be handed out to the beans of its own
  creation chain, which is how field-level cycles are broken
- Deadlock detection between threads: when two threads wait on each other's
  creation locks, the requesting thread is part of the same construction
  chain and receives an early reference (or a descriptive error when none
  exists yet)
- Dependency bookkeeping and destruction in reverse dependency order
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .creation_context import describe_cycle
from .exceptions import (
    BeanCreationNotAllowedError,
    BeanCurrentlyInCreationError,
    BeanDefinitionStoreError,
)

logger = logging.getLogger(__name__)

#: Returned by lookups when no instance or early reference is cached
MISSING = object()


class SingletonBeanRegistry:
    """Registry of shared bean instances with cycle-aware creation.

    Three caches are kept:

    - ``_singletons``: fully initialized instances
    - ``_early_singletons``: early references already handed out
    - ``_singleton_factories``: callables producing an early reference for
      a bean whose raw instance exists

    Attributes:
        _creation_owners: Bean name -> ident of the thread creating it
        _waiting_threads: Thread ident -> bean name whose lock it waits on
    """

    def __init__(self):
        self._singletons: Dict[str, Any] = {}
        self._early_singletons: Dict[str, Any] = {}
        self._singleton_factories: Dict[str, Callable[[], Any]] = {}
        self._registered_singletons: Dict[str, None] = {}
        self._registry_lock = threading.RLock()
        self._creation_locks: Dict[str, threading.Lock] = {}
        self._creation_owners: Dict[str, int] = {}
        self._waiting_threads: Dict[int, str] = {}
        self._in_destruction = False
        self._disposable_beans: Dict[str, Any] = {}
        self._dependent_beans: Dict[str, Dict[str, None]] = {}
        self._dependencies_for_bean: Dict[str, Dict[str, None]] = {}

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register an externally created object as a singleton.

        The object does not go through the instance hook pipeline.

        Raises:
            BeanDefinitionStoreError: When an object is already bound to ``name``
        """
        with self._registry_lock:
            if name in self._singletons:
                existing = self._singletons[name]
                raise BeanDefinitionStoreError(
                    f"Could not register object [{instance!r}] under bean name "
                    f"'{name}': there is already object [{existing!r}] bound"
                )
            self.add_singleton(name, instance)

    def add_singleton(self, name: str, instance: Any) -> None:
        with self._registry_lock:
            self._singletons[name] = instance
            self._singleton_factories.pop(name, None)
            self._early_singletons.pop(name, None)
            self._registered_singletons[name] = None

    def add_singleton_factory(self, name: str, factory: Callable[[], Any]) -> None:
        """Expose an early-reference factory for a bean in creation."""
        with self._registry_lock:
            if name not in self._singletons:
                self._singleton_factories[name] = factory
                self._early_singletons.pop(name, None)
                self._registered_singletons[name] = None

    def get_singleton(
        self,
        name: str,
        singleton_factory: Optional[Callable[[], Any]] = None,
        allow_early_reference: bool = True,
    ) -> Optional[Any]:
        """Return the singleton registered under ``name``.

        Without ``singleton_factory`` this is a lookup: it returns the cached
        instance, an early reference when the bean is in creation by the
        calling thread, or None. Use :meth:`lookup_singleton` to tell a cached
        None apart from a missing singleton.

        With ``singleton_factory`` the instance is created when missing. The
        factory runs while holding the creation lock for ``name``; other
        threads requesting the same name block until it completes. A factory
        result of None is cached like any other instance.

        Raises:
            BeanCurrentlyInCreationError: When ``name`` is requested again from
                its own creation chain before an early reference exists
            BeanCreationNotAllowedError: When singletons are being destroyed
        """
        instance = self.lookup_singleton(name, allow_early_reference)
        if instance is not MISSING:
            return instance
        if singleton_factory is None:
            return None
        return self._create_singleton(name, singleton_factory)

    def lookup_singleton(self, name: str, allow_early_reference: bool = True) -> Any:
        """Return the cached instance or early reference, or ``MISSING``."""
        instance = self._singletons.get(name, MISSING)
        if instance is MISSING and self._creation_owners.get(name) == threading.get_ident():
            instance = self._early_singletons.get(name, MISSING)
            if instance is MISSING and allow_early_reference:
                with self._registry_lock:
                    instance = self._lookup_early_reference(name)
        return instance

    def _lookup_early_reference(self, name: str) -> Any:
        instance = self._singletons.get(name, MISSING)
        if instance is MISSING:
            instance = self._early_singletons.get(name, MISSING)
        if instance is MISSING:
            factory = self._singleton_factories.pop(name, None)
            if factory is not None:
                instance = factory()
                self._early_singletons[name] = instance
        return instance

    def _create_singleton(self, name: str, singleton_factory: Callable[[], Any]) -> Any:
        current = threading.get_ident()
        with self._registry_lock:
            if name in self._singletons:
                return self._singletons[name]
            self._check_creation_allowed(name)
            owner = self._creation_owners.get(name)
            if owner == current:
                raise BeanCurrentlyInCreationError(
                    name,
                    f"Requested bean is currently in creation: unresolvable "
                    f"circular reference {describe_cycle(name)}",
                )
            if owner is not None and self._waits_on(owner, current):
                instance = self._lookup_early_reference(name)
                if instance is not MISSING:
                    logger.debug(
                        "Returning early reference to bean '%s' being created "
                        "by another thread of the same construction chain", name
                    )
                    return instance
                raise BeanCurrentlyInCreationError(
                    name,
                    "Bean is being created by another thread that waits for a "
                    "bean held by this thread, and no early reference exists: "
                    "unresolvable circular reference",
                )
            self._waiting_threads[current] = name
            lock = self._creation_locks.setdefault(name, threading.Lock())
        try:
            lock.acquire()
        finally:
            with self._registry_lock:
                self._waiting_threads.pop(current, None)
        try:
            if name in self._singletons:
                return self._singletons[name]
            with self._registry_lock:
                self._check_creation_allowed(name)
                self._creation_owners[name] = current
            logger.debug("Creating shared instance of singleton bean '%s'", name)
            try:
                instance = singleton_factory()
            except BaseException:
                with self._registry_lock:
                    self._creation_owners.pop(name, None)
                self.destroy_singleton(name)
                raise
            with self._registry_lock:
                self._creation_owners.pop(name, None)
                self.add_singleton(name, instance)
            return instance
        finally:
            lock.release()

    def _check_creation_allowed(self, name: str) -> None:
        if self._in_destruction:
            raise BeanCreationNotAllowedError(
                name,
                "Singleton bean creation not allowed while singletons of this "
                "factory are in destruction (Do not request a bean from a "
                "factory in a destroy method implementation!)",
            )

    def _waits_on(self, owner: int, current: int) -> bool:
        """Whether ``owner`` transitively waits for a lock held by ``current``."""
        seen = set()
        thread = owner
        while thread not in seen:
            seen.add(thread)
            waiting_for = self._waiting_threads.get(thread)
            if waiting_for is None:
                return False
            thread = self._creation_owners.get(waiting_for)
            if thread is None:
                return False
            if thread == current:
                return True
        return False

    def remove_singleton(self, name: str) -> None:
        with self._registry_lock:
            self._singletons.pop(name, None)
            self._singleton_factories.pop(name, None)
            self._early_singletons.pop(name, None)
            self._registered_singletons.pop(name, None)

    def contains_singleton(self, name: str) -> bool:
        return name in self._singletons

    @property
    def singleton_names(self) -> List[str]:
        with self._registry_lock:
            return list(self._registered_singletons)

    @property
    def singleton_count(self) -> int:
        return len(self._registered_singletons)

    def is_singleton_currently_in_creation(self, name: str) -> bool:
        return name in self._creation_owners

    # Dependencies

    def register_dependent_bean(self, name: str, dependent_name: str) -> None:
        """Record that ``dependent_name`` depends on ``name``.

        ``dependent_name`` is destroyed before ``name``.
        """
        with self._registry_lock:
            self._dependent_beans.setdefault(name, {})[dependent_name] = None
            self._dependencies_for_bean.setdefault(dependent_name, {})[name] = None

    def is_dependent(self, name: str, dependent_name: str) -> bool:
        """Whether ``dependent_name`` transitively depends on ``name``."""
        with self._registry_lock:
            return self._is_dependent(name, dependent_name, set())

    def _is_dependent(self, name: str, dependent_name: str, seen: set) -> bool:
        if name in seen:
            return False
        dependents = self._dependent_beans.get(name)
        if not dependents:
            return False
        if dependent_name in dependents:
            return True
        seen.add(name)
        return any(self._is_dependent(d, dependent_name, seen) for d in dependents)

    def get_dependent_beans(self, name: str) -> List[str]:
        with self._registry_lock:
            return list(self._dependent_beans.get(name, ()))

    def get_dependencies_for_bean(self, name: str) -> List[str]:
        with self._registry_lock:
            return list(self._dependencies_for_bean.get(name, ()))

    # Destruction

    def register_disposable_bean(self, name: str, disposable: Any) -> None:
        """Register an object whose ``destroy()`` runs when ``name`` is destroyed."""
        with self._registry_lock:
            self._disposable_beans[name] = disposable

    def destroy_singletons(self) -> None:
        """Destroy every singleton, dependents before their dependencies.

        Disposable beans are destroyed in reverse registration order. Failures
        are logged per bean and never propagated.
        """
        logger.debug("Destroying singletons in %r", self)
        with self._registry_lock:
            self._in_destruction = True
            names = list(self._disposable_beans)
        try:
            for name in reversed(names):
                self.destroy_singleton(name)
        finally:
            with self._registry_lock:
                self._dependent_beans.clear()
                self._dependencies_for_bean.clear()
                self._singletons.clear()
                self._singleton_factories.clear()
                self._early_singletons.clear()
                self._registered_singletons.clear()
                self._in_destruction = False

    def destroy_singleton(self, name: str) -> None:
        self.remove_singleton(name)
        with self._registry_lock:
            disposable = self._disposable_beans.pop(name, None)
        self._destroy_bean(name, disposable)

    def _destroy_bean(self, name: str, disposable: Any) -> None:
        with self._registry_lock:
            dependents = self._dependent_beans.pop(name, None)
        if dependents:
            logger.debug("Retrieved dependent beans for bean '%s': %s", name, list(dependents))
            for dependent_name in dependents:
                self.destroy_singleton(dependent_name)

        if disposable is not None:
            try:
                disposable.destroy()
            except Exception:
                logger.warning(
                    "Destruction of bean with name '%s' threw an exception",
                    name, exc_info=True
                )

        with self._registry_lock:
            for dependents_of_other in self._dependent_beans.values():
                dependents_of_other.pop(name, None)
            self._dependencies_for_bean.pop(name, None)
