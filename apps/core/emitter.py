"""
Event bus used by hook extensions
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class EventHook:
    """A subscribed event handler"""
    event: str
    handler: Callable[..., Any]


class EventEmitter:
    """
    Registry of event handlers keyed by event name.

    Handlers are removed by identity, so the exact function passed to on()
    must be passed to off().
    """

    def __init__(self):
        self._hooks: Dict[str, List[EventHook]] = {}

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe a handler to an event"""
        self._hooks.setdefault(event, []).append(EventHook(event=event, handler=handler))
        logger.debug(f"Subscribed handler to {event}")

    def off(self, event: str, handler: Callable[..., Any]) -> bool:
        """
        Unsubscribe one handler from an event.
        Returns True if a subscription was removed.
        """
        hooks = self._hooks.get(event, [])
        for i, hook in enumerate(hooks):
            if hook.handler is handler:
                hooks.pop(i)
                if not hooks:
                    del self._hooks[event]
                logger.debug(f"Unsubscribed handler from {event}")
                return True
        return False

    async def emit(self, event: str, *args: Any, **kwargs: Any) -> None:
        """
        Emit an event to all subscribed handlers in subscription order.
        A failing handler is logged and does not stop the others.
        """
        # Copy so handlers can unsubscribe while being dispatched
        hooks = list(self._hooks.get(event, []))
        if not hooks:
            return

        logger.debug(f"Emitting {event} to {len(hooks)} handlers")

        for hook in hooks:
            try:
                result = hook.handler(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event handler for {event}: {e}")

    def listener_count(self, event: str = None) -> int:
        """Number of handlers for one event, or for all events"""
        if event is not None:
            return len(self._hooks.get(event, []))
        return sum(len(hooks) for hooks in self._hooks.values())
