"""
DisposableBeanAdapter

Collects every destruction callback of one bean behind a single ``destroy()``
call: destruction-aware instance hooks, ``DisposableBean.destroy()`` and the
configured (or inferred) destroy method.
"""

import logging
from typing import Any, Iterable, List, Optional

from .definition import INFER_METHOD, BeanDefinition
from .hooks import DestructionAwareInstanceHook
from .lifecycle import DisposableBean

logger = logging.getLogger(__name__)

_INFERRED_METHOD_NAMES = ('close', 'shutdown')


def _resolve_destroy_method_name(bean: Any, definition: BeanDefinition) -> Optional[str]:
    name = definition.destroy_method_name
    if name == INFER_METHOD:
        for candidate in _INFERRED_METHOD_NAMES:
            if callable(getattr(bean, candidate, None)):
                return candidate
        return None
    if name == 'destroy' and isinstance(bean, DisposableBean):
        return None
    return name or None


class DisposableBeanAdapter:
    """Runs every destruction callback of a bean, logging failures.

    Attributes:
        bean: The exposed bean instance
        bean_name: Name of the bean
    """

    def __init__(
        self,
        bean: Any,
        bean_name: str,
        definition: BeanDefinition,
        hooks: Iterable[DestructionAwareInstanceHook],
    ):
        self.bean = bean
        self.bean_name = bean_name
        self._invoke_disposable = isinstance(bean, DisposableBean)
        self._destroy_method_name = _resolve_destroy_method_name(bean, definition)
        self._hooks: List[DestructionAwareInstanceHook] = [
            hook for hook in hooks if hook.requires_destruction(bean)
        ]

    @staticmethod
    def has_destruction_callbacks(
        bean: Any,
        definition: BeanDefinition,
        hooks: Iterable[DestructionAwareInstanceHook],
    ) -> bool:
        if isinstance(bean, DisposableBean):
            return True
        if _resolve_destroy_method_name(bean, definition) is not None:
            return True
        return any(hook.requires_destruction(bean) for hook in hooks)

    def destroy(self) -> None:
        for hook in self._hooks:
            try:
                hook.before_destruction(self.bean, self.bean_name)
            except Exception:
                logger.warning(
                    "Destruction hook %r failed for bean '%s'",
                    hook, self.bean_name, exc_info=True
                )

        if self._invoke_disposable:
            logger.debug("Invoking destroy() on bean with name '%s'", self.bean_name)
            try:
                self.bean.destroy()
            except Exception:
                logger.warning(
                    "Invocation of destroy method failed on bean with name '%s'",
                    self.bean_name, exc_info=True
                )

        if self._destroy_method_name:
            method = getattr(self.bean, self._destroy_method_name, None)
            if not callable(method):
                logger.warning(
                    "Could not find destroy method '%s' on bean with name '%s'",
                    self._destroy_method_name, self.bean_name
                )
                return
            logger.debug(
                "Invoking destroy method '%s' on bean with name '%s'",
                self._destroy_method_name, self.bean_name
            )
            try:
                method()
            except Exception:
                logger.warning(
                    "Invocation of destroy method '%s' failed on bean with name '%s'",
                    self._destroy_method_name, self.bean_name, exc_info=True
                )

    def __call__(self) -> None:
        self.destroy()
