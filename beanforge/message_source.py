"""
MessageSource

Message lookup infrastructure. A context always exposes a ``message_source``
bean: either the user's bean of that name or a DelegatingMessageSource that
defers to the parent context.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence


class MessageSource(ABC):
    """Resolves message codes to text."""

    @abstractmethod
    def get_message(self, code: str, args: Sequence[Any] = (),
                    default: Optional[str] = None) -> str:
        """Return the message for ``code`` formatted with ``args``.

        Raises:
            KeyError: When no message is found and no default is given
        """
        pass


class DelegatingMessageSource(MessageSource):
    """Empty message source delegating every lookup to its parent.

    Attributes:
        parent_message_source: Source consulted for every code, may be None
    """

    def __init__(self, parent_message_source: Optional[MessageSource] = None):
        self.parent_message_source = parent_message_source

    def get_message(self, code: str, args: Sequence[Any] = (),
                    default: Optional[str] = None) -> str:
        if self.parent_message_source is not None:
            return self.parent_message_source.get_message(code, args, default)
        if default is not None:
            return default.format(*args)
        raise KeyError(f"No message found under code '{code}'")


class StaticMessageSource(DelegatingMessageSource):
    """Message source backed by a dict, mainly for tests and small applications."""

    def __init__(self, messages: Optional[Dict[str, str]] = None,
                 parent_message_source: Optional[MessageSource] = None):
        super().__init__(parent_message_source)
        self.messages: Dict[str, str] = dict(messages or {})

    def add_message(self, code: str, message: str) -> None:
        self.messages[code] = message

    def get_message(self, code: str, args: Sequence[Any] = (),
                    default: Optional[str] = None) -> str:
        message = self.messages.get(code)
        if message is not None:
            return message.format(*args)
        return super().get_message(code, args, default)
