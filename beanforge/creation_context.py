"""
CreationContext

This module tracks the chain of beans currently being created by the
running thread. The chain is used to:

- Detect prototype cycles (a prototype requesting itself)
- Describe circular references in error messages ("a -> b -> a")
- Record which bean requested a dependency

The context is stored in a ContextVar, so every thread (and every
asyncio task) sees only its own creation chain.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, List, Optional


class CreationContext:
    """One link in the creation chain of the current thread.

    Attributes:
        bean_name: Name of the bean being created
        parent: The link of the bean whose creation requested this one
    """

    def __init__(self, bean_name: str, parent: Optional['CreationContext'] = None):
        self.bean_name = bean_name
        self.parent = parent

    @property
    def chain(self) -> List[str]:
        """Bean names from the outermost creation to this one."""
        names = []
        link: Optional[CreationContext] = self
        while link is not None:
            names.append(link.bean_name)
            link = link.parent
        names.reverse()
        return names

    def __contains__(self, bean_name: str) -> bool:
        link: Optional[CreationContext] = self
        while link is not None:
            if link.bean_name == bean_name:
                return True
            link = link.parent
        return False

    def describe_cycle(self, bean_name: str) -> str:
        chain = self.chain
        if bean_name in chain:
            chain = chain[chain.index(bean_name):]
        return " -> ".join(chain + [bean_name])


_creation_context: ContextVar[Optional[CreationContext]] = ContextVar(
    '_BEANFORGE_CREATION_CONTEXT',
    default=None
)


def current_creation() -> Optional[CreationContext]:
    """Return the innermost creation link of the running thread, if any."""
    return _creation_context.get()


def describe_cycle(bean_name: str) -> str:
    ctx = _creation_context.get()
    if ctx is None:
        return bean_name
    return ctx.describe_cycle(bean_name)


@contextmanager
def creating(bean_name: str) -> Iterator[CreationContext]:
    """Push ``bean_name`` onto the creation chain for the duration of the block."""
    ctx = CreationContext(bean_name, _creation_context.get())
    token = _creation_context.set(ctx)
    try:
        yield ctx
    finally:
        _creation_context.reset(token)
