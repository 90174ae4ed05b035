"""
DefaultLifecycleProcessor

Starts and stops the Lifecycle beans of a context.

Beans are grouped by phase (``SmartLifecycle.get_phase()``, 0 for plain
Lifecycle beans). Groups start in ascending phase order and stop in
descending order. Within a group, the beans a bean depends on are started
before it and its dependents are stopped before it.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from .lifecycle import BeanFactoryAware, Lifecycle, SmartLifecycle

if TYPE_CHECKING:
    from .bean_factory import DefaultBeanFactory

logger = logging.getLogger(__name__)


class LifecycleProcessor(Lifecycle):
    """Lifecycle strategy notified of context refresh and close."""

    def on_refresh(self) -> None:
        pass

    def on_close(self) -> None:
        pass


class DefaultLifecycleProcessor(LifecycleProcessor, BeanFactoryAware):
    """Phase-ordered start and stop of Lifecycle beans."""

    def __init__(self):
        self.bean_factory: Optional['DefaultBeanFactory'] = None
        self._running = False

    def set_bean_factory(self, bean_factory: 'DefaultBeanFactory') -> None:
        self.bean_factory = bean_factory

    def start(self) -> None:
        """Start every Lifecycle bean, including those without auto startup."""
        self._start_beans(auto_startup_only=False)
        self._running = True

    def stop(self) -> None:
        self._stop_beans()
        self._running = False

    def on_refresh(self) -> None:
        self._start_beans(auto_startup_only=True)
        self._running = True

    def on_close(self) -> None:
        self._stop_beans()
        self._running = False

    def is_running(self) -> bool:
        return self._running

    def _lifecycle_beans(self) -> Dict[str, Lifecycle]:
        beans: Dict[str, Lifecycle] = {}
        factory = self.bean_factory
        if factory is None:
            return beans
        for name in factory.get_bean_names_for_type(Lifecycle, False, False):
            if factory.contains_singleton(name) or factory.is_type_match(name, SmartLifecycle):
                bean = factory.get_bean(name)
                if bean is not self and isinstance(bean, Lifecycle):
                    beans[name] = bean
        return beans

    def _group_by_phase(self, beans: Dict[str, Lifecycle],
                        auto_startup_only: bool = False) -> Dict[int, List[str]]:
        phases: Dict[int, List[str]] = {}
        for name, bean in beans.items():
            if auto_startup_only and not (isinstance(bean, SmartLifecycle) and bean.is_auto_startup()):
                continue
            phases.setdefault(_phase_of(bean), []).append(name)
        return phases

    def _start_beans(self, auto_startup_only: bool) -> None:
        beans = self._lifecycle_beans()
        phases = self._group_by_phase(beans, auto_startup_only)
        for phase in sorted(phases):
            logger.debug("Starting beans in phase %d", phase)
            for name in phases[phase]:
                self._do_start(beans, name, auto_startup_only)

    def _do_start(self, beans: Dict[str, Lifecycle], name: str, auto_startup_only: bool) -> None:
        bean = beans.pop(name, None)
        if bean is None:
            return
        for dependency in self.bean_factory.get_dependencies_for_bean(name):
            self._do_start(beans, dependency, auto_startup_only)
        if bean.is_running():
            return
        if auto_startup_only and isinstance(bean, SmartLifecycle) and not bean.is_auto_startup():
            return
        logger.debug("Starting bean '%s' of type [%s]", name, type(bean).__name__)
        bean.start()

    def _stop_beans(self) -> None:
        beans = self._lifecycle_beans()
        phases = self._group_by_phase(beans)
        for phase in sorted(phases, reverse=True):
            logger.debug("Stopping beans in phase %d", phase)
            for name in phases[phase]:
                self._do_stop(beans, name)

    def _do_stop(self, beans: Dict[str, Lifecycle], name: str) -> None:
        bean = beans.pop(name, None)
        if bean is None:
            return
        for dependent in self.bean_factory.get_dependent_beans(name):
            self._do_stop(beans, dependent)
        try:
            if bean.is_running():
                logger.debug("Stopping bean '%s' of type [%s]", name, type(bean).__name__)
                bean.stop()
        except Exception:
            logger.warning("Failed to stop bean '%s'", name, exc_info=True)


def _phase_of(bean: Lifecycle) -> int:
    return bean.get_phase() if isinstance(bean, SmartLifecycle) else 0
