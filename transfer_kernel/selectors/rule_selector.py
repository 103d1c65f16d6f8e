"""Read access to a tenant's approval rule table."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from transfer_kernel.domain.tenancy import ApprovalRule
from transfer_kernel.models.approval_rule import ApprovalRuleModel
from transfer_kernel.selectors.base import BaseSelector


class RuleSelector(BaseSelector):
    def list_rules(self, tenant_id: UUID) -> list[ApprovalRule]:
        """All rules for the tenant ordered by band start."""
        rows = self.session.execute(
            select(ApprovalRuleModel)
            .where(ApprovalRuleModel.tenant_id == tenant_id)
            .order_by(ApprovalRuleModel.min_amount, ApprovalRuleModel.rule_name)
        ).scalars().all()
        return [r.to_dto() for r in rows]

    def get_rule(self, tenant_id: UUID, rule_id: UUID) -> ApprovalRule | None:
        model = self.session.execute(
            select(ApprovalRuleModel).where(
                ApprovalRuleModel.id == rule_id,
                ApprovalRuleModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None
