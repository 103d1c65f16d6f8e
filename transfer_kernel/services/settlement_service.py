"""
SettlementService -- deferred completion of approved transfers.

Responsibility:
    Schedules a settlement job when a transfer enters ``processing``,
    cancels it when the transfer fails first, and runs due jobs through a
    ``SettlementGateway``.

Architecture position:
    Kernel > Services.  Driven by TransferService/ApprovalService (schedule,
    cancel) and by the SettlementScheduler (run_due).

Invariants enforced:
    - At most one job per transfer; scheduling twice is a no-op.
    - A job only completes a transfer that is still ``processing``; the
      status write is validated against the transfer state machine.
    - Gateway failure moves the transfer to ``failed`` with the reason
      recorded, never leaving it in ``processing``.
    - Each job settles inside its own savepoint.  An unexpected gateway
      error rolls back that job only, fails its transfer with
      ``settlement_error: ...`` and lets the rest of the batch run.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from transfer_kernel.domain.clock import Clock
from transfer_kernel.domain.policy import WorkflowPolicy
from transfer_kernel.domain.settlement import (
    SettlementGateway,
    SettlementJobStatus,
    SettlementOutcome,
    SettlementResult,
)
from transfer_kernel.domain.transfer import FailureReason, TransferStatus
from transfer_kernel.exceptions import SettlementFailedError
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.settlement import SettlementJobModel
from transfer_kernel.models.transfer import TransferModel
from transfer_kernel.services._transfer_state import lock_transfer, transition_transfer
from transfer_kernel.services.base import BaseService

logger = get_logger("services.settlement")

# Width of TransferModel.failure_reason.
FAILURE_REASON_MAX = 200


class SettlementService(BaseService):
    """
    Contract:
        - ``schedule()`` records a job due after the policy's settlement delay.
        - ``run_due()`` settles every due job and reports what happened.

    Non-goals:
        - No retries.  A failed settlement is terminal for its transfer,
          whether the gateway declined it or raised unexpectedly.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy or WorkflowPolicy()

    def schedule(self, transfer_id: UUID, tenant_id: UUID) -> datetime:
        """Schedule settlement; returns the due time."""
        existing = self._load_job(transfer_id)
        if existing is not None:
            return existing.due_at

        now = self.clock.now()
        job = SettlementJobModel(
            tenant_id=tenant_id,
            transfer_id=transfer_id,
            due_at=now + self.policy.settlement_delay,
            status=SettlementJobStatus.SCHEDULED.value,
            attempts=0,
            created_at=now,
        )
        self.session.add(job)
        self.session.flush()

        logger.info(
            "settlement_scheduled",
            extra={"transfer_id": str(transfer_id), "due_at": job.due_at},
        )
        return job.due_at

    def cancel(self, transfer_id: UUID, reason: str) -> bool:
        """Cancel a still-scheduled job.  Returns False when none was pending."""
        job = self._load_job(transfer_id)
        if job is None or job.status != SettlementJobStatus.SCHEDULED.value:
            return False
        job.status = SettlementJobStatus.CANCELLED.value
        job.last_error = reason
        job.finished_at = self.clock.now()
        self.session.flush()
        logger.info(
            "settlement_cancelled",
            extra={"transfer_id": str(transfer_id), "reason": reason},
        )
        return True

    def run_due(
        self,
        gateway: SettlementGateway,
        now: datetime | None = None,
        limit: int = 100,
    ) -> list[SettlementResult]:
        now = now or self.clock.now()
        jobs = self.session.execute(
            select(SettlementJobModel)
            .where(
                SettlementJobModel.status == SettlementJobStatus.SCHEDULED.value,
                SettlementJobModel.due_at <= now,
            )
            .order_by(SettlementJobModel.due_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        ).scalars().all()

        return [self._run_job(job, gateway, now) for job in jobs]

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _load_job(self, transfer_id: UUID) -> SettlementJobModel | None:
        return self.session.execute(
            select(SettlementJobModel).where(SettlementJobModel.transfer_id == transfer_id)
        ).scalar_one_or_none()

    def _run_job(
        self,
        job: SettlementJobModel,
        gateway: SettlementGateway,
        now: datetime,
    ) -> SettlementResult:
        transfer = lock_transfer(self.session, job.transfer_id)
        job.attempts += 1
        job.finished_at = now

        if transfer is None or transfer.status != TransferStatus.PROCESSING.value:
            job.status = SettlementJobStatus.CANCELLED.value
            job.last_error = "transfer_not_processing"
            self.session.flush()
            logger.warning(
                "settlement_skipped",
                extra={
                    "transfer_id": str(job.transfer_id),
                    "status": transfer.status if transfer is not None else None,
                },
            )
            return SettlementResult(
                transfer_id=job.transfer_id,
                tenant_id=job.tenant_id,
                outcome=SettlementOutcome.SKIPPED,
                reason="transfer_not_processing",
            )

        try:
            with self.session.begin_nested():
                gateway.settle(transfer.to_dto())
                transition_transfer(transfer, TransferStatus.COMPLETED, now)
                job.status = SettlementJobStatus.COMPLETED.value
                self.session.flush()
        except SettlementFailedError as exc:
            reason = f"{FailureReason.SETTLEMENT_FAILED.value}: {exc.reason}"
            return self._fail_job(job, transfer, now, reason, exc.reason)
        except Exception as exc:
            logger.exception(
                "settlement_error",
                extra={"transfer_id": str(job.transfer_id), "job_id": str(job.id)},
            )
            detail = f"{type(exc).__name__}: {exc}"
            reason = f"{FailureReason.SETTLEMENT_ERROR.value}: {detail}"
            return self._fail_job(job, transfer, now, reason, detail)

        logger.info(
            "settlement_completed",
            extra={"transfer_id": str(transfer.id), "amount": transfer.amount},
        )
        return SettlementResult(
            transfer_id=transfer.id,
            tenant_id=transfer.tenant_id,
            outcome=SettlementOutcome.COMPLETED,
            transfer=transfer.to_dto(),
        )

    def _fail_job(
        self,
        job: SettlementJobModel,
        transfer: TransferModel,
        now: datetime,
        reason: str,
        detail: str,
    ) -> SettlementResult:
        # The savepoint rollback expired both rows; they reload here.
        reason = reason[:FAILURE_REASON_MAX]
        transition_transfer(transfer, TransferStatus.FAILED, now, failure_reason=reason)
        job.status = SettlementJobStatus.FAILED.value
        job.last_error = detail
        job.finished_at = now
        self.session.flush()
        logger.warning(
            "settlement_failed",
            extra={"transfer_id": str(transfer.id), "reason": detail},
        )
        return SettlementResult(
            transfer_id=transfer.id,
            tenant_id=transfer.tenant_id,
            outcome=SettlementOutcome.FAILED,
            reason=reason,
            transfer=transfer.to_dto(),
        )
