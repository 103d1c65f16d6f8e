"""
Event sinks -- delivery of committed transfer lifecycle events.

Responsibility:
    Concrete ``EventSink`` implementations: a structured-log sink, a sink
    that persists per-tenant notifications, and a fan-out composite.

Architecture position:
    Services.  Sinks are invoked by ``ApprovalEngine`` and
    ``SettlementScheduler`` strictly after the originating transaction has
    committed, so a sink can never roll back a state change.

Invariants enforced:
    - ``NotificationEventSink`` writes in a transaction of its own.
    - ``CompositeEventSink`` delivers to every child even when one fails;
      the failure is logged and does not propagate.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from transfer_kernel.db.engine import session_scope
from transfer_kernel.domain.events import EventSink, TransferEvent, TransferEventType
from transfer_kernel.domain.transfer import Transfer
from transfer_kernel.logging_config import get_logger
from transfer_kernel.services.notification_service import NotificationService

logger = get_logger("services.events")


class LoggingEventSink:
    """Writes every event as a structured ``transfer_event`` log line."""

    def emit(self, event: TransferEvent) -> None:
        logger.info(
            "transfer_event",
            extra={
                "event_type": event.event_type.value,
                "tenant_id": str(event.tenant_id),
                "transfer_id": str(event.transfer_id),
                "occurred_at": event.occurred_at,
                "payload": event.payload,
            },
        )


class NotificationEventSink:
    """Persists each event as a notification row for its tenant."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def emit(self, event: TransferEvent) -> None:
        with session_scope(self._session_factory) as session:
            NotificationService(session).record_event(event)


class CompositeEventSink:
    def __init__(self, sinks: Iterable[EventSink]):
        self.sinks = tuple(sinks)

    def emit(self, event: TransferEvent) -> None:
        for sink in self.sinks:
            publish(sink, (event,))


def transfer_event(
    event_type: TransferEventType,
    transfer: Transfer,
    occurred_at: datetime,
    **payload: Any,
) -> TransferEvent:
    """Build an event for ``transfer``; ``payload`` adds to the common fields."""
    base: dict[str, Any] = {
        "reference": transfer.reference,
        "amount": transfer.amount,
        "currency": transfer.currency,
        "status": transfer.status.value,
        "approval_status": transfer.approval_status.value,
    }
    base.update(payload)
    return TransferEvent(
        event_type=event_type,
        tenant_id=transfer.tenant_id,
        transfer_id=transfer.transfer_id,
        occurred_at=occurred_at,
        payload=base,
    )


def publish(sink: EventSink | None, events: Iterable[TransferEvent]) -> None:
    """Deliver committed events.  Sink failures are logged, never raised."""
    if sink is None:
        return
    for event in events:
        try:
            sink.emit(event)
        except Exception:
            logger.exception(
                "event_sink_failed",
                extra={
                    "sink": type(sink).__name__,
                    "event_type": event.event_type.value,
                    "transfer_id": str(event.transfer_id),
                },
            )
