"""
Settlement -- deferred completion of approved transfers.

Responsibility:
    Declares the settlement job lifecycle, the per-job result, and the
    ``SettlementGateway`` protocol that performs the actual movement of funds.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Gateways live in outer layers.

Invariants enforced:
    - Only a transfer in ``processing`` is ever settled.
    - A job runs at most once to a terminal job status.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from transfer_kernel.domain.transfer import Transfer


class SettlementJobStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SettlementOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SettlementResult:
    transfer_id: UUID
    tenant_id: UUID
    outcome: SettlementOutcome
    reason: str | None = None
    transfer: Transfer | None = None


@runtime_checkable
class SettlementGateway(Protocol):
    """
    Moves the funds for one transfer.

    Contract:
        Returns normally on success.  Raises ``SettlementFailedError`` when
        the transfer cannot be settled; the transfer is then marked failed.
    """

    def settle(self, transfer: Transfer) -> None:
        ...
