"""
Module: transfer_kernel.models.transfer
Responsibility: ORM persistence for transfers and their frozen rule snapshot.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``0 <= current_approvals <= required_approvals`` (check constraint).
    - Status and approval status limited to the declared enum values.
    - ``amount > 0``.
    - ``reference`` is unique per tenant.
    - Rule snapshot columns (rule_name, required_role_level, ...) are written
      once at initiation and never updated.

Failure modes:
    - IntegrityError when a write would break the approval-count bounds.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from transfer_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from transfer_kernel.domain.transfer import Transfer


class TransferModel(Base):
    """
    Persistent transfer.

    Guarantees:
        - Approval counters are only ever advanced through a guarded
          single-statement UPDATE (see ApprovalService).
    """

    __tablename__ = "transfers"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending_approval', 'processing', 'completed', 'failed')",
            name="ck_transfers_valid_status",
        ),
        CheckConstraint(
            "approval_status IN ('auto_approved', 'pending_approval', 'approved')",
            name="ck_transfers_valid_approval_status",
        ),
        CheckConstraint(
            "current_approvals >= 0 AND current_approvals <= required_approvals",
            name="ck_transfers_approval_bounds",
        ),
        CheckConstraint("amount > 0", name="ck_transfers_positive_amount"),
        UniqueConstraint("tenant_id", "reference", name="uq_transfers_tenant_reference"),
        Index("idx_transfers_tenant_status", "tenant_id", "status", "initiated_at"),
        Index("idx_transfers_deadline", "status", "approval_deadline"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    reference: Mapped[str] = mapped_column(String(30), nullable=False)
    sequence: Mapped[int] = mapped_column(nullable=False)

    source_wallet_id: Mapped[str] = mapped_column(String(100), nullable=False)
    destination_wallet_id: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    initiated_by: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )

    status: Mapped[str] = mapped_column(String(30), nullable=False)
    approval_status: Mapped[str] = mapped_column(String(30), nullable=False)
    required_approvals: Mapped[int] = mapped_column(nullable=False)
    current_approvals: Mapped[int] = mapped_column(nullable=False, default=0)

    # Rule snapshot, frozen at initiation
    rule_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rule_name: Mapped[str] = mapped_column(String(100), nullable=False)
    rule_auto_approve: Mapped[bool] = mapped_column(Boolean, nullable=False)
    rule_is_default: Mapped[bool] = mapped_column(Boolean, nullable=False)
    required_role_level: Mapped[int] = mapped_column(nullable=False)

    approval_deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    initiated_at: Mapped[datetime] = mapped_column(nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def to_dto(self) -> Transfer:
        from transfer_kernel.domain.transfer import (
            ApprovalState,
            RuleSnapshot,
            Transfer,
            TransferStatus,
        )

        return Transfer(
            transfer_id=self.id,
            tenant_id=self.tenant_id,
            reference=self.reference,
            source_wallet_id=self.source_wallet_id,
            destination_wallet_id=self.destination_wallet_id,
            amount=self.amount,
            currency=self.currency,
            initiated_by=self.initiated_by,
            status=TransferStatus(self.status),
            approval_status=ApprovalState(self.approval_status),
            required_approvals=self.required_approvals,
            current_approvals=self.current_approvals,
            rule=RuleSnapshot(
                rule_name=self.rule_name,
                auto_approve=self.rule_auto_approve,
                required_approvals=self.required_approvals,
                required_role_level=self.required_role_level,
                is_default=self.rule_is_default,
                rule_id=self.rule_id,
            ),
            initiated_at=self.initiated_at,
            reason=self.reason,
            approval_deadline=self.approval_deadline,
            approved_at=self.approved_at,
            completed_at=self.completed_at,
            failed_at=self.failed_at,
            failure_reason=self.failure_reason,
            sequence=self.sequence,
        )

    def __repr__(self) -> str:
        return (
            f"<Transfer {self.reference} {self.status}/{self.approval_status} "
            f"{self.current_approvals}/{self.required_approvals}>"
        )
