"""
Transfer -- lifecycle states, legal transitions and immutable records.

Responsibility:
    Declares the transfer state machine (status and approval status), the
    rule snapshot frozen onto each transfer at initiation, the append-only
    approval record, and the result objects returned by the workflow.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Status only moves along ``TRANSFER_TRANSITIONS``:
      pending_approval -> processing | failed, processing -> completed | failed.
      ``completed`` and ``failed`` are terminal.
    - ``auto_approved`` transfers start in ``processing`` with zero required
      approvals and never accept approvals.
    - ``0 <= current_approvals <= required_approvals`` on every Transfer.

Failure modes:
    - InvalidTransferTransitionError from ``validate_transition``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from transfer_kernel.exceptions import InvalidTransferTransitionError


class TransferStatus(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ApprovalState(str, Enum):
    AUTO_APPROVED = "auto_approved"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"


TRANSFER_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.PENDING_APPROVAL: frozenset({
        TransferStatus.PROCESSING,
        TransferStatus.FAILED,
    }),
    TransferStatus.PROCESSING: frozenset({
        TransferStatus.COMPLETED,
        TransferStatus.FAILED,
    }),
    TransferStatus.COMPLETED: frozenset(),
    TransferStatus.FAILED: frozenset(),
}

TERMINAL_TRANSFER_STATUSES: frozenset[TransferStatus] = frozenset({
    TransferStatus.COMPLETED,
    TransferStatus.FAILED,
})

# Statuses shown in the pending listing
IN_FLIGHT_STATUSES: frozenset[TransferStatus] = frozenset({
    TransferStatus.PENDING_APPROVAL,
    TransferStatus.PROCESSING,
})


def validate_transition(
    transfer_id: UUID | str,
    from_status: TransferStatus,
    to_status: TransferStatus,
) -> None:
    """Raise unless ``from_status -> to_status`` is a legal edge."""
    if to_status not in TRANSFER_TRANSITIONS[from_status]:
        raise InvalidTransferTransitionError(
            str(transfer_id), from_status.value, to_status.value,
        )


class WalletDirection(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


class FailureReason(str, Enum):
    APPROVAL_DEADLINE_ELAPSED = "approval_deadline_elapsed"
    SETTLEMENT_FAILED = "settlement_failed"
    SETTLEMENT_ERROR = "settlement_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RuleSnapshot:
    """The approval requirement frozen onto a transfer at initiation."""

    rule_name: str
    auto_approve: bool
    required_approvals: int
    required_role_level: int
    is_default: bool
    rule_id: UUID | None = None


@dataclass(frozen=True)
class Transfer:
    transfer_id: UUID
    tenant_id: UUID
    reference: str
    source_wallet_id: str
    destination_wallet_id: str
    amount: Decimal
    currency: str
    initiated_by: UUID
    status: TransferStatus
    approval_status: ApprovalState
    required_approvals: int
    current_approvals: int
    rule: RuleSnapshot
    initiated_at: datetime
    reason: str | None = None
    approval_deadline: datetime | None = None
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    failure_reason: str | None = None
    sequence: int = 0

    @property
    def is_auto_approved(self) -> bool:
        return self.approval_status == ApprovalState.AUTO_APPROVED

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TRANSFER_STATUSES

    def direction_for(self, wallet_id: str) -> WalletDirection:
        """Whether funds leave or enter ``wallet_id`` in this transfer."""
        if wallet_id == self.source_wallet_id:
            return WalletDirection.OUTGOING
        return WalletDirection.INCOMING

    def counterparty_of(self, wallet_id: str) -> str:
        if wallet_id == self.source_wallet_id:
            return self.destination_wallet_id
        return self.source_wallet_id


@dataclass(frozen=True)
class ApprovalRecord:
    """One user's approval of one transfer.  Append-only."""

    record_id: UUID
    tenant_id: UUID
    transfer_id: UUID
    approver_user_id: UUID
    approver_role: str
    approver_level: int
    approved_at: datetime
    comments: str | None = None
    approval_method: str = "manual"
    approver_name: str | None = None


@dataclass(frozen=True)
class InitiationResult:
    transfer: Transfer
    next_steps: tuple[str, ...] = ()

    @property
    def auto_approved(self) -> bool:
        return self.transfer.is_auto_approved


@dataclass(frozen=True)
class ApprovalOutcome:
    """What one successful approval did to a transfer."""

    transfer: Transfer
    record: ApprovalRecord
    threshold_reached: bool

    @property
    def current_approvals(self) -> int:
        return self.transfer.current_approvals

    @property
    def required_approvals(self) -> int:
        return self.transfer.required_approvals

    @property
    def status(self) -> TransferStatus:
        return self.transfer.status


@dataclass(frozen=True)
class TransferProgress:
    transfer: Transfer
    approvals: tuple[ApprovalRecord, ...] = field(default_factory=tuple)
    percentage: int = 0

    @property
    def approved(self) -> int:
        return self.transfer.current_approvals

    @property
    def required(self) -> int:
        return self.transfer.required_approvals
