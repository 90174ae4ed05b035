"""
SimpleEventMulticaster

Delivers events to the registered listeners. Listeners are either instances
or bean names; bean names are resolved through the bean factory each time an
event is delivered, so listener beans are only created when an event needs
them.

With an executor, listeners run asynchronously. An error raised there
cannot reach the publisher, so it goes to the error handler, or is logged
when there is none.
"""

import logging
import threading
from concurrent.futures import Executor, Future
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .events import ApplicationEvent, ApplicationListener
from .lifecycle import BeanFactoryAware
from .ordering import sort_by_order

if TYPE_CHECKING:
    from .bean_factory import DefaultBeanFactory

logger = logging.getLogger(__name__)


class SimpleEventMulticaster(BeanFactoryAware):
    """Multicasts events to every listener that supports them.

    Listeners run in the publishing thread unless an ``executor`` is set.
    Without an ``error_handler`` a listener error propagates to the
    publisher, or is logged when delivery is asynchronous. With one, the
    handler receives the error and delivery continues with the next
    listener.

    Attributes:
        bean_factory: Factory used to resolve listener bean names
        executor: Optional executor for asynchronous delivery
        error_handler: Optional callable receiving listener errors
    """

    def __init__(
        self,
        bean_factory: Optional['DefaultBeanFactory'] = None,
        executor: Optional[Executor] = None,
        error_handler: Optional[Callable[[Exception], None]] = None,
    ):
        self.bean_factory = bean_factory
        self.executor = executor
        self.error_handler = error_handler
        self._listeners: Dict[ApplicationListener, None] = {}
        self._listener_beans: Dict[str, None] = {}
        self._lock = threading.Lock()

    def set_bean_factory(self, bean_factory: 'DefaultBeanFactory') -> None:
        self.bean_factory = bean_factory

    def add_listener(self, listener: ApplicationListener) -> None:
        with self._lock:
            self._listeners[listener] = None

    def remove_listener(self, listener: ApplicationListener) -> None:
        with self._lock:
            self._listeners.pop(listener, None)

    def add_listener_bean(self, bean_name: str) -> None:
        with self._lock:
            self._listener_beans[bean_name] = None

    def remove_listener_bean(self, bean_name: str) -> None:
        with self._lock:
            self._listener_beans.pop(bean_name, None)

    def remove_all_listeners(self) -> None:
        with self._lock:
            self._listeners.clear()
            self._listener_beans.clear()

    def get_listeners(self, event: Optional[ApplicationEvent] = None) -> List[ApplicationListener]:
        """Return the listeners supporting ``event`` (all when None), sorted by order."""
        with self._lock:
            listeners = list(self._listeners)
            bean_names = list(self._listener_beans)
        if bean_names and self.bean_factory is not None:
            for name in bean_names:
                bean = self.bean_factory.get_bean(name)
                if not any(bean is existing for existing in listeners):
                    listeners.append(bean)
        if event is not None:
            listeners = [l for l in listeners if l.supports_event(event)]
        return sort_by_order(listeners)

    def multicast_event(self, event: ApplicationEvent) -> None:
        for listener in self.get_listeners(event):
            if self.executor is not None:
                future = self.executor.submit(self._invoke_listener, listener, event)
                future.add_done_callback(self._log_async_failure)
            else:
                self._invoke_listener(listener, event)

    def _invoke_listener(self, listener: ApplicationListener, event: ApplicationEvent) -> Any:
        if self.error_handler is None:
            return listener.on_application_event(event)
        try:
            return listener.on_application_event(event)
        except Exception as e:
            self.error_handler(e)
            return None

    def _log_async_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Exception thrown from ApplicationListener invoked asynchronously",
                exc_info=(type(error), error, error.__traceback__)
            )
