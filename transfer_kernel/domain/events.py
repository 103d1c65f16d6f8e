"""
Events -- lifecycle notifications emitted after a transfer changes.

Responsibility:
    Names the lifecycle events and defines the ``EventSink`` seam that
    delivery mechanisms plug into.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Sinks live in outer layers.

Invariants enforced:
    - Events are emitted only after the state change they describe has
      committed.  A sink failure never rolls back or fails that change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID


class TransferEventType(str, Enum):
    TRANSFER_INITIATED = "transfer_initiated"
    APPROVAL_REQUIRED = "approval_required"
    TRANSFER_APPROVED = "transfer_approved"
    TRANSFER_FULLY_APPROVED = "transfer_fully_approved"
    TRANSFER_COMPLETED = "transfer_completed"
    TRANSFER_FAILED = "transfer_failed"


@dataclass(frozen=True)
class TransferEvent:
    event_type: TransferEventType
    tenant_id: UUID
    transfer_id: UUID
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class EventSink(Protocol):
    """Receives committed lifecycle events.  May raise; callers swallow."""

    def emit(self, event: TransferEvent) -> None:
        ...
