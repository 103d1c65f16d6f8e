"""
Module: transfer_kernel.models.settlement
Responsibility: ORM persistence for deferred settlement jobs.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one settlement job per transfer (UNIQUE transfer_id), so a
      transfer crossing its approval threshold twice cannot be settled twice.

Failure modes:
    - IntegrityError on a second job for the same transfer.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from transfer_kernel.db.base import Base, UUIDString


class SettlementJobModel(Base):
    __tablename__ = "settlement_jobs"

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'failed', 'cancelled')",
            name="ck_settlement_jobs_valid_status",
        ),
        Index("idx_settlement_jobs_due", "status", "due_at"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    transfer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transfers.id"), nullable=False, unique=True,
    )
    due_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    attempts: Mapped[int] = mapped_column(nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<SettlementJob transfer={self.transfer_id} {self.status} due={self.due_at}>"
