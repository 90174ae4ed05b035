"""
Context support hooks

Instance hooks every application context registers on its bean factory:

- ContextAwareProcessor: calls the context-level aware callbacks
- ApplicationListenerDetector: attaches singleton listener beans to the
  context once they are initialized and detaches them before destruction
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Type

from .events import ApplicationListener
from .hooks import DestructionAwareInstanceHook, InstanceHook, MergedDefinitionHook
from .lifecycle import ApplicationContextAware, EnvironmentAware, EventPublisherAware

if TYPE_CHECKING:
    from .context import AbstractApplicationContext
    from .definition import BeanDefinition

logger = logging.getLogger(__name__)


class ContextAwareProcessor(InstanceHook):
    """Passes the environment and the context to aware beans."""

    def __init__(self, context: 'AbstractApplicationContext'):
        self.context = context

    def before_init(self, bean: Any, bean_name: str) -> Any:
        if isinstance(bean, EnvironmentAware):
            bean.set_environment(self.context.environment)
        if isinstance(bean, EventPublisherAware):
            bean.set_event_publisher(self.context)
        if isinstance(bean, ApplicationContextAware):
            bean.set_application_context(self.context)
        return bean


class ApplicationListenerDetector(DestructionAwareInstanceHook, MergedDefinitionHook):
    """Registers listener beans with the context after initialization."""

    def __init__(self, context: 'AbstractApplicationContext'):
        self.context = context
        self._singleton_names: Dict[str, bool] = {}

    def post_process_merged_definition(self, definition: 'BeanDefinition',
                                       bean_type: Type, bean_name: str) -> None:
        if issubclass(bean_type, ApplicationListener):
            self._singleton_names[bean_name] = definition.is_singleton

    def after_init(self, bean: Any, bean_name: str) -> Any:
        if isinstance(bean, ApplicationListener):
            singleton = self._singleton_names.get(bean_name)
            if singleton:
                self.context.add_listener(bean)
            elif singleton is False:
                logger.warning(
                    "Listener bean '%s' is not a singleton: it cannot be attached "
                    "to the event bus and will not receive events reliably", bean_name
                )
                self._singleton_names.pop(bean_name, None)
        return bean

    def before_destruction(self, bean: Any, bean_name: str) -> None:
        if isinstance(bean, ApplicationListener):
            multicaster = self.context.event_multicaster
            if multicaster is not None:
                multicaster.remove_listener(bean)
                multicaster.remove_listener_bean(bean_name)

    def requires_destruction(self, bean: Any) -> bool:
        return isinstance(bean, ApplicationListener)

    def reset_definition(self, bean_name: str) -> None:
        self._singleton_names.pop(bean_name, None)
