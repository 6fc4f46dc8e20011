"""Shared cross-window message channel of the host."""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class MessageEvent:
    """A message posted to the host window."""

    data: Any
    origin: str
    source: Any = None


Listener = Callable[[MessageEvent], Union[None, Awaitable[None]]]


class MessageChannel:
    """Fan-out of host ``message`` events to every subscriber.

    Many unrelated senders share this channel, so listeners must check
    ``source`` and ``origin`` before looking at ``data``.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def dispatch(self, event: MessageEvent) -> None:
        """Deliver an event to every current listener.

        A failing listener is logged and does not stop delivery to the others.
        """
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Message listener failed")


# Global channel instance
_channel: Optional[MessageChannel] = None


def get_message_channel() -> MessageChannel:
    """Get the host's global message channel."""
    global _channel
    if _channel is None:
        _channel = MessageChannel()
    return _channel
