"""In-process domain event fan-out.

Transport to browsers or other services is out of scope; observers register a
handler and receive every event published after a successful commit.
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, Field

from commercetax.domain.enums import FilingEvent

logger = logging.getLogger(__name__)


class DomainEvent(BaseModel):
    name: FilingEvent
    payload: dict[str, Any] = {}
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[DomainEvent], Union[Awaitable[None], None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register a handler. Returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    async def publish(self, name: FilingEvent, **payload: Any) -> DomainEvent:
        event = DomainEvent(name=name, payload=payload)
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # A failing observer must not undo a committed filing
                logger.exception("Event handler %r failed for %s", handler, name.value)
        return event
