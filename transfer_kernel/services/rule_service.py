"""
ApprovalRuleService -- maintains a tenant's amount-banded approval rules.

Responsibility:
    Create, update and delete approval rules after validating them against
    the tenant's role definitions.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.

Invariants enforced:
    - ``min_amount >= 0``; ``max_amount`` is None or ``>= min_amount``.
    - ``required_role_level`` equals the level of a role the tenant defines.
    - Auto-approve rules require zero approvals; every other rule requires
      at least one.
    - Rule edits never touch in-flight transfers: each transfer carries its
      own snapshot of the rule it was initiated under.

Failure modes:
    - InvalidApprovalRuleError on any of the above.
    - ApprovalRuleNotFoundError for an unknown rule id within the tenant.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import select

from transfer_kernel.domain.tenancy import ApprovalRule
from transfer_kernel.exceptions import ApprovalRuleNotFoundError, InvalidApprovalRuleError
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.approval_rule import ApprovalRuleModel
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services.base import BaseService

logger = get_logger("services.approval_rule")

_UNSET: Any = object()


def _to_decimal(rule_name: str, field: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidApprovalRuleError(rule_name, f"{field} is not a number: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise InvalidApprovalRuleError(rule_name, f"{field} is not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidApprovalRuleError(rule_name, f"{field} must be finite")
    return result


class ApprovalRuleService(BaseService):
    def create_rule(
        self,
        tenant_id: UUID,
        rule_name: str,
        min_amount: Any,
        max_amount: Any,
        required_approvals: int,
        required_role_level: int,
        auto_approve: bool = False,
    ) -> ApprovalRule:
        fields = self._validate(
            tenant_id,
            rule_name=rule_name,
            min_amount=min_amount,
            max_amount=max_amount,
            required_approvals=required_approvals,
            required_role_level=required_role_level,
            auto_approve=auto_approve,
        )
        model = ApprovalRuleModel(
            tenant_id=tenant_id,
            created_at=self.clock.now(),
            **fields,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approval_rule_created",
            extra={
                "tenant_id": str(tenant_id),
                "rule_id": str(model.id),
                "rule_name": model.rule_name,
                "min_amount": model.min_amount,
                "max_amount": model.max_amount,
                "required_approvals": model.required_approvals,
                "required_role_level": model.required_role_level,
            },
        )
        return model.to_dto()

    def update_rule(
        self,
        tenant_id: UUID,
        rule_id: UUID,
        *,
        rule_name: str | None = None,
        min_amount: Any = None,
        max_amount: Any = _UNSET,
        required_approvals: int | None = None,
        required_role_level: int | None = None,
        auto_approve: bool | None = None,
    ) -> ApprovalRule:
        """Apply the given changes.  ``max_amount=None`` makes the band unbounded."""
        model = self._load(tenant_id, rule_id)
        fields = self._validate(
            tenant_id,
            rule_name=rule_name if rule_name is not None else model.rule_name,
            min_amount=min_amount if min_amount is not None else model.min_amount,
            max_amount=max_amount if max_amount is not _UNSET else model.max_amount,
            required_approvals=(
                required_approvals if required_approvals is not None
                else model.required_approvals
            ),
            required_role_level=(
                required_role_level if required_role_level is not None
                else model.required_role_level
            ),
            auto_approve=auto_approve if auto_approve is not None else model.auto_approve,
        )
        for key, value in fields.items():
            setattr(model, key, value)
        model.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "approval_rule_updated",
            extra={"tenant_id": str(tenant_id), "rule_id": str(rule_id)},
        )
        return model.to_dto()

    def delete_rule(self, tenant_id: UUID, rule_id: UUID) -> None:
        model = self._load(tenant_id, rule_id)
        self.session.delete(model)
        self.session.flush()
        logger.info(
            "approval_rule_deleted",
            extra={"tenant_id": str(tenant_id), "rule_id": str(rule_id)},
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _load(self, tenant_id: UUID, rule_id: UUID) -> ApprovalRuleModel:
        model = self.session.execute(
            select(ApprovalRuleModel).where(
                ApprovalRuleModel.id == rule_id,
                ApprovalRuleModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise ApprovalRuleNotFoundError(str(rule_id))
        return model

    def _validate(
        self,
        tenant_id: UUID,
        *,
        rule_name: str,
        min_amount: Any,
        max_amount: Any,
        required_approvals: Any,
        required_role_level: Any,
        auto_approve: Any,
    ) -> dict[str, Any]:
        name = (rule_name or "").strip()
        if not name:
            raise InvalidApprovalRuleError(str(rule_name), "rule_name is required")

        low = _to_decimal(name, "min_amount", min_amount)
        if low < 0:
            raise InvalidApprovalRuleError(name, "min_amount must be >= 0")
        high = None
        if max_amount is not None:
            high = _to_decimal(name, "max_amount", max_amount)
            if high < low:
                raise InvalidApprovalRuleError(name, "max_amount must be >= min_amount")

        for field, value in (
            ("required_approvals", required_approvals),
            ("required_role_level", required_role_level),
        ):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidApprovalRuleError(name, f"{field} must be an integer")

        auto = bool(auto_approve)
        if auto and required_approvals != 0:
            raise InvalidApprovalRuleError(name, "auto-approve rules require 0 approvals")
        if not auto and required_approvals < 1:
            raise InvalidApprovalRuleError(
                name, "rules that are not auto-approved require at least 1 approval",
            )

        levels = TenantSelector(self.session).role_levels(tenant_id)
        if required_role_level not in levels:
            raise InvalidApprovalRuleError(
                name,
                f"required_role_level {required_role_level} does not match any role "
                f"(available levels: {sorted(levels)})",
            )

        return {
            "rule_name": name,
            "min_amount": low,
            "max_amount": high,
            "required_approvals": required_approvals,
            "required_role_level": required_role_level,
            "auto_approve": auto,
        }
