"""
Hook registration

This module implements how a refresh discovers, orders and runs hooks.

Factory-level hooks are invoked:

1. Definition-registry hooks, until a fixed point is reached: every round
   discovers the registry hooks that have not run yet, sorts them by tier
   and invokes them. A registry hook may register further registry hooks,
   which run in the next round.
2. ``post_process_bean_factory`` of every registry hook that ran.
3. Plain factory hooks, one tier at a time: priority-ordered hooks are
   created and invoked before the ordered ones are even created, so they can
   still change their definitions.

Instance-level hooks are registered, not invoked. Creating a hook bean runs
it through the hooks registered so far; a diagnostic hook logs every bean
that completes before all hooks are in place.

Statically registered hooks are sorted by tier too, and run before the hooks
discovered as beans.
"""

import logging
from typing import Iterable, List, Set

from .bean_factory import DefaultBeanFactory
from .definition import BeanRole
from .hooks import BeanFactoryHook, DefinitionRegistryHook, InstanceHook, MergedDefinitionHook
from .ordering import TIER_ORDERED, TIER_PRIORITY, sort_by_order, tier_of

logger = logging.getLogger(__name__)


def invoke_factory_hooks(bean_factory: DefaultBeanFactory,
                         static_hooks: Iterable[BeanFactoryHook] = ()) -> None:
    """Run every factory-level hook against ``bean_factory``.

    Args:
        bean_factory: Factory whose definitions the hooks may change
        static_hooks: Hooks registered on the context before refresh
    """
    static_hooks = sort_by_order(static_hooks)
    processed: Set[str] = set()
    registry_hooks: List[DefinitionRegistryHook] = []

    for hook in static_hooks:
        if isinstance(hook, DefinitionRegistryHook):
            hook.post_process_definition_registry(bean_factory)
            registry_hooks.append(hook)

    while True:
        names = [
            name for name in bean_factory.get_bean_names_for_type(DefinitionRegistryHook, True, False)
            if name not in processed
        ]
        if not names:
            break
        processed.update(names)
        current = sort_by_order(
            bean_factory.get_bean(name, DefinitionRegistryHook) for name in names
        )
        for hook in current:
            logger.debug("Invoking definition registry hook %r", hook)
            hook.post_process_definition_registry(bean_factory)
        registry_hooks.extend(current)

    for hook in registry_hooks:
        hook.post_process_bean_factory(bean_factory)
    for hook in static_hooks:
        if not isinstance(hook, DefinitionRegistryHook):
            hook.post_process_bean_factory(bean_factory)

    priority_names, ordered_names, unordered_names = [], [], []
    for name in bean_factory.get_bean_names_for_type(BeanFactoryHook, True, False):
        if name in processed:
            continue
        tier = tier_of(bean_factory.get_type(name))
        if tier == TIER_PRIORITY:
            priority_names.append(name)
        elif tier == TIER_ORDERED:
            ordered_names.append(name)
        else:
            unordered_names.append(name)

    for names in (priority_names, ordered_names, unordered_names):
        current = sort_by_order(bean_factory.get_bean(name, BeanFactoryHook) for name in names)
        for hook in current:
            logger.debug("Invoking factory hook %r", hook)
            hook.post_process_bean_factory(bean_factory)

    bean_factory.clear_metadata_cache()


def register_instance_hooks(bean_factory: DefaultBeanFactory) -> None:
    """Register the instance hooks defined as beans, by tier.

    Merged-definition hooks are registered once more at the end so that they
    run after every other hook.
    """
    names = bean_factory.get_bean_names_for_type(InstanceHook, True, False)
    target_count = bean_factory.instance_hook_count + 1 + len(names)
    bean_factory.add_instance_hook(HookEligibilityChecker(bean_factory, target_count))

    priority_names, ordered_names, unordered_names = [], [], []
    for name in names:
        tier = tier_of(bean_factory.get_type(name))
        if tier == TIER_PRIORITY:
            priority_names.append(name)
        elif tier == TIER_ORDERED:
            ordered_names.append(name)
        else:
            unordered_names.append(name)

    internal: List[InstanceHook] = []
    for names_of_tier, sort in ((priority_names, True), (ordered_names, True),
                                (unordered_names, False)):
        hooks = [bean_factory.get_bean(name, InstanceHook) for name in names_of_tier]
        if sort:
            hooks = sort_by_order(hooks)
        for hook in hooks:
            bean_factory.add_instance_hook(hook)
        internal.extend(h for h in hooks if isinstance(h, MergedDefinitionHook))

    for hook in sort_by_order(internal):
        bean_factory.add_instance_hook(hook)


class HookEligibilityChecker(InstanceHook):
    """Logs beans created while instance hooks are still being registered.

    Such beans did not go through every hook (for example, they may not have
    been wrapped by a proxying hook).
    """

    def __init__(self, bean_factory: DefaultBeanFactory, target_count: int):
        self.bean_factory = bean_factory
        self.target_count = target_count

    def after_init(self, bean, bean_name):
        if (not isinstance(bean, InstanceHook)
                and not self._is_infrastructure(bean_name)
                and self.bean_factory.instance_hook_count < self.target_count):
            logger.info(
                "Bean '%s' of type [%s] is not eligible for getting processed by "
                "all instance hooks (for example: not eligible for auto-proxying)",
                bean_name, type(bean).__name__
            )
        return bean

    def _is_infrastructure(self, bean_name: str) -> bool:
        if not self.bean_factory.contains_definition(bean_name):
            return False
        return self.bean_factory.get_merged_definition(bean_name).role == BeanRole.INFRASTRUCTURE
