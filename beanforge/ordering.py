"""
Ordering

Capability markers and comparators used to schedule hooks and listeners.

Hooks are sorted in three tiers:

1. ``PriorityOrdered`` objects, by ascending order value
2. ``Ordered`` objects, by ascending order value
3. everything else, in discovery order

Lower order values run first.
"""

from typing import Any, Iterable, List

HIGHEST_PRECEDENCE = -(2 ** 31)
LOWEST_PRECEDENCE = 2 ** 31 - 1

TIER_PRIORITY = 0
TIER_ORDERED = 1
TIER_UNORDERED = 2


class Ordered:
    """Capability for objects with an explicit numeric order."""

    def get_order(self) -> int:
        return LOWEST_PRECEDENCE


class PriorityOrdered(Ordered):
    """Capability for objects that run before every plain ``Ordered`` one."""

    pass


def tier_of(obj: Any) -> int:
    """Return the scheduling tier of an object or class."""
    cls = obj if isinstance(obj, type) else type(obj)
    if issubclass(cls, PriorityOrdered):
        return TIER_PRIORITY
    if issubclass(cls, Ordered):
        return TIER_ORDERED
    return TIER_UNORDERED


def get_order(obj: Any) -> int:
    if isinstance(obj, Ordered):
        return obj.get_order()
    return LOWEST_PRECEDENCE


def sort_by_order(objects: Iterable[Any]) -> List[Any]:
    """Sort objects by tier, then by order value.

    The sort is stable, so objects of equal rank keep their incoming order.
    """
    return sorted(objects, key=lambda o: (tier_of(o), get_order(o)))
