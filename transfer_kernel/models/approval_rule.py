"""
Module: transfer_kernel.models.approval_rule
Responsibility: ORM persistence for per-tenant amount-banded approval rules.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``min_amount >= 0`` and ``max_amount`` is NULL (unbounded) or
      ``>= min_amount``.
    - ``required_approvals >= 0``; auto-approve rules carry zero.

Failure modes:
    - IntegrityError on a band that violates the check constraints.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from transfer_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from transfer_kernel.domain.tenancy import ApprovalRule


class ApprovalRuleModel(Base):
    __tablename__ = "approval_rules"

    __table_args__ = (
        CheckConstraint("min_amount >= 0", name="ck_approval_rules_min_non_negative"),
        CheckConstraint(
            "max_amount IS NULL OR max_amount >= min_amount",
            name="ck_approval_rules_band_ordered",
        ),
        CheckConstraint(
            "required_approvals >= 0",
            name="ck_approval_rules_approvals_non_negative",
        ),
        Index("idx_approval_rules_tenant_min", "tenant_id", "min_amount"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    rule_name: Mapped[str] = mapped_column(String(100), nullable=False)
    min_amount: Mapped[Decimal] = mapped_column(nullable=False)
    max_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    required_approvals: Mapped[int] = mapped_column(nullable=False)
    required_role_level: Mapped[int] = mapped_column(nullable=False)
    auto_approve: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> ApprovalRule:
        from transfer_kernel.domain.tenancy import ApprovalRule

        return ApprovalRule(
            rule_id=self.id,
            tenant_id=self.tenant_id,
            rule_name=self.rule_name,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            required_approvals=self.required_approvals,
            required_role_level=self.required_role_level,
            auto_approve=self.auto_approve,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        upper = self.max_amount if self.max_amount is not None else "inf"
        return f"<ApprovalRule {self.rule_name} [{self.min_amount}, {upper}]>"
