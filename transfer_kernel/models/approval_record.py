"""
Module: transfer_kernel.models.approval_record
Responsibility: ORM persistence for the approval ledger.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One approval per (transfer, approver): UNIQUE(transfer_id,
      approver_user_id) is the final arbiter under concurrency.
    - Append-only: ORM listeners reject UPDATE and DELETE.

Failure modes:
    - IntegrityError on a second approval by the same user.
    - ImmutabilityViolationError on record UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from transfer_kernel.db.base import Base, UUIDString
from transfer_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from transfer_kernel.domain.transfer import ApprovalRecord


class ApprovalRecordModel(Base):
    """
    One user's approval of one transfer.

    Guarantees:
        - Role name and level are copied from the approver at approval time
          so the ledger shows the authority the approval was granted under.
    """

    __tablename__ = "transfer_approvals"

    __table_args__ = (
        UniqueConstraint(
            "transfer_id", "approver_user_id",
            name="uq_transfer_approvals_transfer_approver",
        ),
        Index("idx_transfer_approvals_transfer_time", "transfer_id", "approved_at"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    transfer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transfers.id"), nullable=False,
    )
    approver_user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    approver_role: Mapped[str] = mapped_column(String(50), nullable=False)
    approver_level: Mapped[int] = mapped_column(nullable=False)
    approval_method: Mapped[str] = mapped_column(String(30), nullable=False, default="manual")
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self, approver_name: str | None = None) -> ApprovalRecord:
        from transfer_kernel.domain.transfer import ApprovalRecord

        return ApprovalRecord(
            record_id=self.id,
            tenant_id=self.tenant_id,
            transfer_id=self.transfer_id,
            approver_user_id=self.approver_user_id,
            approver_role=self.approver_role,
            approver_level=self.approver_level,
            approved_at=self.approved_at,
            comments=self.comments,
            approval_method=self.approval_method,
            approver_name=approver_name,
        )

    def __repr__(self) -> str:
        return (
            f"<ApprovalRecord transfer={self.transfer_id} "
            f"approver={self.approver_user_id}>"
        )


@event.listens_for(ApprovalRecordModel, "before_update")
def prevent_approval_record_update(mapper, connection, target):
    """Prevent updates to approval records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalRecord",
        entity_id=str(target.id),
        reason="Approval records are append-only -- cannot modify",
    )


@event.listens_for(ApprovalRecordModel, "before_delete")
def prevent_approval_record_delete(mapper, connection, target):
    """Prevent deletion of approval records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalRecord",
        entity_id=str(target.id),
        reason="Approval records are append-only -- cannot delete",
    )
