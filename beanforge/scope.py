"""
Scope

Pluggable storage strategies for beans that are neither singletons nor
prototypes. A scope decides how many instances exist per bean name and how
long they live; the container only asks it for an instance and hands it a
factory to call when the scope has none.

This module provides:
    - Scope: the strategy interface
    - ScopeRegistry: scope name -> Scope, with "singleton" and "prototype" reserved
    - SimpleMapScope: map-backed scope that runs destruction callbacks on close()
    - SimpleThreadScope: one instance per thread, without destruction callbacks
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .definition import SCOPE_PROTOTYPE, SCOPE_SINGLETON
from .exceptions import ContextStateError

logger = logging.getLogger(__name__)


class Scope(ABC):
    """Storage strategy for scoped beans.

    Example::

        class RequestScope(Scope):
            def get(self, name, object_factory):
                store = current_request().attributes
                if name not in store:
                    store[name] = object_factory()
                return store[name]
            ...

        context.register_scope("request", RequestScope())
    """

    @abstractmethod
    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        """Return the instance for ``name``, calling ``object_factory`` if the scope has none."""
        pass

    @abstractmethod
    def remove(self, name: str) -> Optional[Any]:
        """Remove and return the instance for ``name``, or None.

        Destruction callbacks registered for ``name`` are discarded, not
        executed: the caller is responsible for destroying the object.
        """
        pass

    @abstractmethod
    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback to run when the scope destroys ``name``.

        Scopes that cannot support callbacks must not raise; they should log
        a warning the first time a callback is dropped.
        """
        pass

    def resolve_contextual_object(self, key: str) -> Optional[Any]:
        return None

    def get_conversation_id(self) -> Optional[str]:
        return None


class ScopeRegistry:
    """Scope name -> Scope mapping.

    The built-in names ``singleton`` and ``prototype`` are handled directly by
    the bean factory and cannot be registered here.
    """

    RESERVED_SCOPE_NAMES = (SCOPE_SINGLETON, SCOPE_PROTOTYPE)

    def __init__(self):
        self._scopes: Dict[str, Scope] = {}
        self._lock = threading.Lock()

    def register_scope(self, name: str, scope: Scope) -> None:
        """Register ``scope`` under ``name``, replacing any previous one.

        Raises:
            ValueError: For the reserved names "singleton" and "prototype"
        """
        if name in self.RESERVED_SCOPE_NAMES:
            raise ValueError(
                f"Cannot replace existing scopes '{SCOPE_SINGLETON}' and '{SCOPE_PROTOTYPE}'"
            )
        with self._lock:
            previous = self._scopes.get(name)
            self._scopes[name] = scope
        if previous is not None and previous is not scope:
            logger.debug("Replacing scope '%s' from [%r] to [%r]", name, previous, scope)

    def get_scope(self, name: str) -> Optional[Scope]:
        return self._scopes.get(name)

    @property
    def scope_names(self) -> List[str]:
        with self._lock:
            return list(self._scopes)


class SimpleMapScope(Scope):
    """Map-backed scope representing one logical conversation.

    Instances live until the scope is closed. Closing runs the registered
    destruction callbacks in reverse registration order.

    Attributes:
        scope_id: Identifier of the conversation this scope represents

    Example::

        with SimpleMapScope("conversation-1") as scope:
            context.register_scope("conversation", scope)
            cart = context.get_bean("cart")
        # Scope closed, destruction callbacks executed
    """

    def __init__(self, scope_id: str = "default"):
        self.scope_id = scope_id
        self._instances: Dict[str, Any] = {}
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._lock = threading.RLock()
        self._closed = False

    def _ensure_not_closed(self) -> None:
        if self._closed:
            raise ContextStateError(
                f"Scope '{self.scope_id}' has been closed. "
                "Cannot resolve beans from a closed scope."
            )

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        with self._lock:
            self._ensure_not_closed()
            if name not in self._instances:
                self._instances[name] = object_factory()
            return self._instances[name]

    def remove(self, name: str) -> Optional[Any]:
        with self._lock:
            self._callbacks.pop(name, None)
            return self._instances.pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks[name] = callback

    def get_conversation_id(self) -> Optional[str]:
        return self.scope_id

    def close(self) -> None:
        """Destroy every instance of this scope. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            callbacks = list(self._callbacks.items())
            self._callbacks.clear()
            self._instances.clear()
        for name, callback in reversed(callbacks):
            try:
                callback()
            except Exception:
                logger.warning(
                    "Destruction callback for scoped bean '%s' in scope '%s' failed",
                    name, self.scope_id, exc_info=True
                )

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> 'SimpleMapScope':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class SimpleThreadScope(Scope):
    """Scope holding one instance per bean name and thread.

    Destruction callbacks are not supported: they are dropped, with a
    warning logged the first time.
    """

    def __init__(self):
        self._local = threading.local()
        self._warned = False

    def _store(self) -> Dict[str, Any]:
        store = getattr(self._local, 'instances', None)
        if store is None:
            store = self._local.instances = {}
        return store

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        store = self._store()
        if name not in store:
            store[name] = object_factory()
        return store[name]

    def remove(self, name: str) -> Optional[Any]:
        return self._store().pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        if not self._warned:
            self._warned = True
            logger.warning(
                "SimpleThreadScope does not support destruction callbacks; "
                "dropping callback for bean '%s'. Consider using a scope that "
                "destroys its instances.", name
            )

    def get_conversation_id(self) -> Optional[str]:
        return threading.current_thread().name
