"""
GetProxy

This module provides a proxy object that enables the context.get[Type]()
syntax for bean retrieval.

The proxy is set as an attribute on every application context, allowing
subscript access without requiring a metaclass:

    service = context.get[MyService]()
    service = context.get["my_service"]()

Instead of:

    service = context.get_bean(MyService)
"""

from typing import TYPE_CHECKING, Any, Callable, Type, TypeVar, Union

if TYPE_CHECKING:
    from .context import AbstractApplicationContext

T = TypeVar('T')


class GetProxy:
    """Proxy object supporting context.get[Type]() syntax.

    Attributes:
        _context: The application context lookups are delegated to

    Example::

        getter = context.get[MyService]
        service = getter()

        # Is equivalent to:
        service = context.get_bean(MyService)
    """

    def __init__(self, context: 'AbstractApplicationContext'):
        self._context = context

    def __getitem__(self, key: Union[str, Type[T]]) -> Callable[[], Any]:
        """Return a callable resolving ``key`` (a bean name or type) when invoked.

        The lookup happens when the callable is invoked, so a getter may be
        created before the context is refreshed.

        Raises:
            ContextStateError: When invoked while the context is not active
        """
        context = self._context

        def get() -> Any:
            return context.get_bean(key)

        return get
