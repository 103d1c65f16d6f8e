"""
transfer_kernel.services.approval_service -- Recording approvals.

Responsibility:
    Validates an approval request against the transfer and the approver,
    appends the approval record, advances the transfer's approval counter
    and, when the threshold is crossed, moves the transfer to
    ``processing`` and schedules settlement.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.

Invariants enforced:
    - Checks run in a fixed order and the first failure wins; nothing is
      written until every check has passed:
        1. approver is an active user of the tenant
        2. transfer exists in the tenant
        3. transfer is not completed
        4. transfer was not auto-approved
        5. approver has not approved this transfer before
        6. transfer is still pending approval
        7. approver's current role level >= the transfer's frozen
           required role level
    - One approval per (transfer, approver), enforced by the service AND by
      a unique constraint.
    - The counter only moves through a single guarded UPDATE
      (``current_approvals < required_approvals AND status =
      pending_approval``), so it can never exceed the requirement and
      exactly one approval observes the threshold crossing.

Failure modes:
    - InvalidApproverError, TransferNotFoundError, AlreadyCompletedError,
      NoApprovalNeededError, DuplicateApprovalError, TransferNotPendingError,
      InsufficientRoleLevelError (checks above).
    - ConcurrentApprovalError when the guarded UPDATE matches no row.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from transfer_kernel.domain.clock import Clock
from transfer_kernel.domain.policy import WorkflowPolicy
from transfer_kernel.domain.transfer import ApprovalOutcome, ApprovalState, TransferStatus
from transfer_kernel.exceptions import (
    AlreadyCompletedError,
    ConcurrentApprovalError,
    DuplicateApprovalError,
    InsufficientRoleLevelError,
    InvalidApproverError,
    NoApprovalNeededError,
    TransferNotFoundError,
    TransferNotPendingError,
)
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.approval_record import ApprovalRecordModel
from transfer_kernel.models.transfer import TransferModel
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services._transfer_state import lock_transfer, transition_transfer
from transfer_kernel.services.base import BaseService
from transfer_kernel.services.settlement_service import SettlementService

logger = get_logger("services.approval")


class ApprovalService(BaseService):
    """Records approvals against pending transfers."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy or WorkflowPolicy()

    def approve(
        self,
        tenant_id: UUID,
        transfer_id: UUID,
        approver_user_id: UUID,
        comments: str | None = None,
    ) -> ApprovalOutcome:
        approver = TenantSelector(self.session).get_user(tenant_id, approver_user_id)
        if approver is None or not approver.is_active:
            raise InvalidApproverError(str(tenant_id), str(approver_user_id))

        model = lock_transfer(self.session, transfer_id, tenant_id)
        if model is None:
            raise TransferNotFoundError(str(transfer_id))
        if model.status == TransferStatus.COMPLETED.value:
            raise AlreadyCompletedError(str(transfer_id))
        if model.approval_status == ApprovalState.AUTO_APPROVED.value:
            raise NoApprovalNeededError(str(transfer_id))

        already = self.session.execute(
            select(ApprovalRecordModel.id).where(
                ApprovalRecordModel.transfer_id == transfer_id,
                ApprovalRecordModel.approver_user_id == approver_user_id,
            )
        ).first()
        if already is not None:
            raise DuplicateApprovalError(str(transfer_id), str(approver_user_id))

        if model.status != TransferStatus.PENDING_APPROVAL.value:
            raise TransferNotPendingError(str(transfer_id), model.status)

        if approver.role_level < model.required_role_level:
            raise InsufficientRoleLevelError(
                str(approver_user_id),
                required_level=model.required_role_level,
                actual_level=approver.role_level,
            )

        now = self.clock.now()
        record = ApprovalRecordModel(
            tenant_id=tenant_id,
            transfer_id=transfer_id,
            approver_user_id=approver_user_id,
            approver_role=approver.role_name,
            approver_level=approver.role_level,
            approval_method="manual",
            comments=comments,
            approved_at=now,
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(record)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateApprovalError(str(transfer_id), str(approver_user_id)) from None

        result = self.session.execute(
            update(TransferModel)
            .where(
                TransferModel.id == transfer_id,
                TransferModel.tenant_id == tenant_id,
                TransferModel.status == TransferStatus.PENDING_APPROVAL.value,
                TransferModel.current_approvals < TransferModel.required_approvals,
            )
            .values(current_approvals=TransferModel.current_approvals + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentApprovalError(str(transfer_id))

        self.session.refresh(model)
        threshold_reached = model.current_approvals >= model.required_approvals
        if threshold_reached:
            transition_transfer(model, TransferStatus.PROCESSING, now)
            model.approval_status = ApprovalState.APPROVED.value
            model.approved_at = now
            self.session.flush()
            SettlementService(self.session, self.clock, self.policy).schedule(
                model.id, tenant_id,
            )

        logger.info(
            "approval_recorded",
            extra={
                "tenant_id": str(tenant_id),
                "transfer_id": str(transfer_id),
                "approver_id": str(approver_user_id),
                "approver_level": approver.role_level,
                "current_approvals": model.current_approvals,
                "required_approvals": model.required_approvals,
                "threshold_reached": threshold_reached,
            },
        )

        return ApprovalOutcome(
            transfer=model.to_dto(),
            record=record.to_dto(approver_name=approver.full_name),
            threshold_reached=threshold_reached,
        )
