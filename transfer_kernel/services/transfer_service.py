"""
TransferService -- transfer initiation, cancellation and deadline expiry.

Responsibility:
    Creates transfers in their initial state from an already-resolved rule
    snapshot, and moves them to ``failed`` when cancelled or when their
    approval window elapses.

Architecture position:
    Kernel > Services.  Rule resolution happens above this layer
    (transfer_services); the snapshot handed in here is stored verbatim.

Invariants enforced:
    - The initiator is an active user of the tenant.
    - Auto-approve: ``approval_status=auto_approved``, ``status=processing``,
      zero required approvals, settlement scheduled.
    - Otherwise: ``pending_approval`` / ``pending_approval``, required
      approvals taken from the snapshot, zero current approvals, deadline
      set to now + approval window.
    - Every status change is validated against the state machine.

Failure modes:
    - InvalidAmountError, InvalidCurrencyError, InvalidTransferRequestError
      on malformed input.
    - UnauthorizedInitiatorError for an unknown or inactive initiator.
    - TransferNotFoundError, AlreadyCompletedError, TransferNotPendingError,
      UnauthorizedActorError from ``cancel``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from transfer_kernel.db.types import parse_amount, validate_currency
from transfer_kernel.domain.clock import Clock
from transfer_kernel.domain.policy import WorkflowPolicy
from transfer_kernel.domain.transfer import (
    ApprovalState,
    FailureReason,
    RuleSnapshot,
    Transfer,
    TransferStatus,
)
from transfer_kernel.exceptions import (
    AlreadyCompletedError,
    InvalidTransferRequestError,
    TransferNotFoundError,
    TransferNotPendingError,
    UnauthorizedActorError,
    UnauthorizedInitiatorError,
)
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.transfer import TransferModel
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services._transfer_state import lock_transfer, transition_transfer
from transfer_kernel.services.base import BaseService
from transfer_kernel.services.sequence_service import SequenceService
from transfer_kernel.services.settlement_service import SettlementService

logger = get_logger("services.transfer")


def _require_text(field: str, value: Any, max_length: int = 100) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidTransferRequestError(field, "is required")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidTransferRequestError(field, f"exceeds {max_length} characters")
    return value


class TransferService(BaseService):
    def __init__(
        self,
        session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy or WorkflowPolicy()

    def initiate(
        self,
        tenant_id: UUID,
        initiated_by: UUID,
        amount: Decimal | str | int,
        currency: str,
        source_wallet_id: str,
        destination_wallet_id: str,
        rule: RuleSnapshot,
        reason: str | None = None,
    ) -> Transfer:
        """Create a transfer governed by ``rule``."""
        amount = parse_amount(amount)
        currency = validate_currency(currency)
        source_wallet_id = _require_text("source_wallet_id", source_wallet_id)
        destination_wallet_id = _require_text("destination_wallet_id", destination_wallet_id)
        if destination_wallet_id == source_wallet_id:
            raise InvalidTransferRequestError(
                "destination_wallet_id", "must differ from source_wallet_id",
            )

        initiator = TenantSelector(self.session).get_user(tenant_id, initiated_by)
        if initiator is None or not initiator.is_active:
            raise UnauthorizedInitiatorError(str(tenant_id), str(initiated_by))

        sequence, reference = SequenceService(self.session).next_transfer_reference(tenant_id)
        now = self.clock.now()

        if rule.auto_approve:
            status = TransferStatus.PROCESSING
            approval_status = ApprovalState.AUTO_APPROVED
            required = 0
            deadline = None
        else:
            status = TransferStatus.PENDING_APPROVAL
            approval_status = ApprovalState.PENDING_APPROVAL
            required = rule.required_approvals
            deadline = now + self.policy.approval_window

        model = TransferModel(
            tenant_id=tenant_id,
            reference=reference,
            sequence=sequence,
            source_wallet_id=source_wallet_id,
            destination_wallet_id=destination_wallet_id,
            amount=amount,
            currency=currency,
            reason=reason,
            initiated_by=initiated_by,
            status=status.value,
            approval_status=approval_status.value,
            required_approvals=required,
            current_approvals=0,
            rule_id=rule.rule_id,
            rule_name=rule.rule_name,
            rule_auto_approve=rule.auto_approve,
            rule_is_default=rule.is_default,
            required_role_level=rule.required_role_level,
            approval_deadline=deadline,
            initiated_at=now,
        )
        self.session.add(model)
        self.session.flush()

        if rule.auto_approve:
            SettlementService(self.session, self.clock, self.policy).schedule(
                model.id, tenant_id,
            )

        logger.info(
            "transfer_initiated",
            extra={
                "tenant_id": str(tenant_id),
                "transfer_id": str(model.id),
                "reference": reference,
                "amount": amount,
                "currency": currency,
                "rule_name": rule.rule_name,
                "rule_is_default": rule.is_default,
                "approval_status": approval_status.value,
                "required_approvals": required,
                "required_role_level": rule.required_role_level,
            },
        )
        return model.to_dto()

    def cancel(
        self,
        tenant_id: UUID,
        transfer_id: UUID,
        actor_user_id: UUID,
        reason: str | None = None,
    ) -> Transfer:
        """
        Fail a transfer that has not settled yet.

        The initiator may always cancel; any other active user needs at
        least the role level the transfer's approvals require.
        """
        actor = TenantSelector(self.session).get_user(tenant_id, actor_user_id)
        if actor is None or not actor.is_active:
            raise UnauthorizedActorError(str(actor_user_id), "cancel transfers")

        model = lock_transfer(self.session, transfer_id, tenant_id)
        if model is None:
            raise TransferNotFoundError(str(transfer_id))
        if model.status == TransferStatus.COMPLETED.value:
            raise AlreadyCompletedError(str(transfer_id))
        if model.status == TransferStatus.FAILED.value:
            raise TransferNotPendingError(str(transfer_id), model.status)
        if model.initiated_by != actor_user_id and actor.role_level < model.required_role_level:
            raise UnauthorizedActorError(str(actor_user_id), "cancel this transfer")

        failure_reason = FailureReason.CANCELLED.value
        if reason:
            failure_reason = f"{failure_reason}: {reason}"
        transition_transfer(
            model, TransferStatus.FAILED, self.clock.now(), failure_reason=failure_reason,
        )
        SettlementService(self.session, self.clock, self.policy).cancel(model.id, failure_reason)
        self.session.flush()

        logger.info(
            "transfer_cancelled",
            extra={
                "tenant_id": str(tenant_id),
                "transfer_id": str(transfer_id),
                "actor_id": str(actor_user_id),
            },
        )
        return model.to_dto()

    def expire_overdue(self, now: datetime | None = None) -> list[Transfer]:
        """Fail every pending transfer whose approval deadline has passed."""
        now = now or self.clock.now()
        models = self.session.execute(
            select(TransferModel)
            .where(
                TransferModel.status == TransferStatus.PENDING_APPROVAL.value,
                TransferModel.approval_deadline.is_not(None),
                TransferModel.approval_deadline <= now,
            )
            .order_by(TransferModel.approval_deadline)
            .with_for_update(skip_locked=True)
        ).scalars().all()

        expired = []
        for model in models:
            transition_transfer(
                model,
                TransferStatus.FAILED,
                now,
                failure_reason=FailureReason.APPROVAL_DEADLINE_ELAPSED.value,
            )
            expired.append(model.to_dto())
        self.session.flush()

        if expired:
            logger.info("transfers_expired", extra={"count": len(expired)})
        return expired
