"""
Diagnostic events emitted by the tax engine.

The extractor and classifier are pure: instead of logging directly they hand
`TaxEvent` objects to an optional `on_event` callback. Callers decide what to
do with them; `log_event` is the listener the batch runner uses by default.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TaxEventType(str, Enum):
    """Kinds of diagnostics the engine can report."""

    RATE_UNRESOLVED = "tax.rate_unresolved"
    INVOICE_LEVEL_FALLBACK = "tax.invoice_level_fallback"
    ANOMALOUS_EXPORT = "tax.anomalous_export"


WARNING_EVENTS = frozenset(
    {TaxEventType.RATE_UNRESOLVED, TaxEventType.ANOMALOUS_EXPORT}
)


class TaxEvent(BaseModel):
    """A single diagnostic produced while extracting or classifying."""

    event_type: TaxEventType
    message: str
    payload: Dict[str, Any] = Field(default_factory=dict)


EventHook = Callable[[TaxEvent], None]


def emit(
    on_event: Optional[EventHook],
    event_type: TaxEventType,
    message: str,
    **payload: Any,
) -> None:
    """Deliver an event to `on_event` if a hook was given."""
    if on_event is None:
        return
    on_event(TaxEvent(event_type=event_type, message=message, payload=payload))


def log_event(event: TaxEvent) -> None:
    """Write an event to the module logger."""
    level = logging.WARNING if event.event_type in WARNING_EVENTS else logging.INFO
    logger.log(level, "%s: %s %s", event.event_type.value, event.message, event.payload)


class EventCollector:
    """
    Hook that keeps every event it receives, optionally forwarding them.

    Useful in tests and for attaching diagnostics to a report.
    """

    def __init__(self, forward: Optional[EventHook] = None) -> None:
        self.events: List[TaxEvent] = []
        self._forward = forward

    def __call__(self, event: TaxEvent) -> None:
        self.events.append(event)
        if self._forward is not None:
            self._forward(event)

    def of_type(self, event_type: TaxEventType) -> List[TaxEvent]:
        return [e for e in self.events if e.event_type == event_type]
