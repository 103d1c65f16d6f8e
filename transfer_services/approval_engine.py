"""
transfer_services.approval_engine -- The transfer workflow facade.

Responsibility:
    The single entry point callers use to drive a transfer through its
    lifecycle: initiate, approve, cancel, query status, list pending, read
    a wallet's history.  Each
    operation runs in its own transaction; lifecycle events are published
    only after that transaction commits.

Architecture position:
    Services -- stateful orchestration over engines + kernel.  Owns
    transaction boundaries; kernel services only flush.

Invariants enforced:
    - Approvals and cancellations of one transfer are serialized for the
      whole transaction by a per-transfer lock, on top of the row lock and
      the approval ledger's unique constraint.  N concurrent approvals by
      N distinct eligible users therefore yield exactly N increments and
      exactly one threshold crossing, on every backend.
    - The governing rule is resolved and frozen onto the transfer at
      initiation; later rule edits never affect it.
    - Events never precede their commit, and a failing sink never fails
      the operation.

Failure modes:
    - Typed ``TransferKernelError`` subclasses from the kernel propagate
      unchanged; the transaction is rolled back.
    - Any ``SQLAlchemyError`` escaping a transaction is re-raised as
      ``StorageError``.

Usage:
    engine = ApprovalEngine(session_factory, clock=clock, policy=policy,
                            event_sink=LoggingEventSink())
    result = engine.initiate(tenant_id, user_id, "25000", "USDC",
                             "wallet-a", "wallet-b")
    engine.approve(tenant_id, result.transfer.transfer_id, manager_id)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transfer_engines.approval import approval_next_steps, approval_percentage, snapshot_rule
from transfer_kernel.db.engine import session_scope
from transfer_kernel.db.types import parse_amount
from transfer_kernel.domain.clock import Clock, SystemClock
from transfer_kernel.domain.events import EventSink, TransferEvent, TransferEventType
from transfer_kernel.domain.policy import WorkflowPolicy
from transfer_kernel.domain.transfer import (
    ApprovalOutcome,
    InitiationResult,
    Transfer,
    TransferProgress,
)
from transfer_kernel.exceptions import StorageError, TransferNotFoundError
from transfer_kernel.logging_config import LogContext, get_logger
from transfer_kernel.selectors.transfer_selector import TransferSelector
from transfer_kernel.services.approval_service import ApprovalService
from transfer_kernel.services.transfer_service import TransferService
from transfer_services.event_sinks import publish, transfer_event
from transfer_services.locks import TransferLockRegistry
from transfer_services.rule_resolver import resolve_tenant_rule

logger = get_logger("services.approval_engine")


class ApprovalEngine:
    """Facade over the transfer approval workflow.

    Contract:
        Receives a session factory plus optional clock, workflow policy,
        event sink and lock registry.  Every public method opens, commits
        and closes its own session.

    Non-goals:
        - Does NOT run settlement; ``SettlementScheduler`` does.
        - Does NOT authenticate callers; the HTTP layer resolves the tenant.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        event_sink: EventSink | None = None,
        locks: TransferLockRegistry | None = None,
    ):
        self._session_factory = session_factory
        self.clock = clock or SystemClock()
        self.policy = policy or WorkflowPolicy()
        self.event_sink = event_sink
        self.locks = locks or TransferLockRegistry()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def initiate(
        self,
        tenant_id: UUID,
        initiated_by: UUID,
        amount: Decimal | str | int,
        currency: str,
        source_wallet_id: str,
        destination_wallet_id: str,
        reason: str | None = None,
    ) -> InitiationResult:
        amount = parse_amount(amount)
        with LogContext.bind(tenant_id=str(tenant_id), actor_id=str(initiated_by)):
            with self._transaction("initiate_transfer") as session:
                snapshot = snapshot_rule(resolve_tenant_rule(session, tenant_id, amount))
                transfer = TransferService(session, self.clock, self.policy).initiate(
                    tenant_id=tenant_id,
                    initiated_by=initiated_by,
                    amount=amount,
                    currency=currency,
                    source_wallet_id=source_wallet_id,
                    destination_wallet_id=destination_wallet_id,
                    rule=snapshot,
                    reason=reason,
                )

            now = self.clock.now()
            events = [
                transfer_event(
                    TransferEventType.TRANSFER_INITIATED,
                    transfer,
                    now,
                    initiated_by=str(initiated_by),
                    rule_name=snapshot.rule_name,
                ),
            ]
            if not transfer.is_auto_approved:
                events.append(
                    transfer_event(
                        TransferEventType.APPROVAL_REQUIRED,
                        transfer,
                        now,
                        required_approvals=transfer.required_approvals,
                        required_role_level=snapshot.required_role_level,
                        approval_deadline=transfer.approval_deadline,
                    )
                )
            self._publish(events)

        return InitiationResult(transfer=transfer, next_steps=approval_next_steps(snapshot))

    def approve(
        self,
        tenant_id: UUID,
        transfer_id: UUID,
        approver_user_id: UUID,
        comments: str | None = None,
    ) -> ApprovalOutcome:
        with LogContext.bind(
            tenant_id=str(tenant_id),
            actor_id=str(approver_user_id),
            transfer_id=str(transfer_id),
        ):
            with self.locks.hold(transfer_id):
                with self._transaction("approve_transfer") as session:
                    outcome = ApprovalService(session, self.clock, self.policy).approve(
                        tenant_id, transfer_id, approver_user_id, comments,
                    )

            now = self.clock.now()
            events = [
                transfer_event(
                    TransferEventType.TRANSFER_APPROVED,
                    outcome.transfer,
                    now,
                    approver_user_id=str(approver_user_id),
                    approver_role=outcome.record.approver_role,
                    current_approvals=outcome.current_approvals,
                    required_approvals=outcome.required_approvals,
                ),
            ]
            if outcome.threshold_reached:
                events.append(
                    transfer_event(
                        TransferEventType.TRANSFER_FULLY_APPROVED,
                        outcome.transfer,
                        now,
                        required_approvals=outcome.required_approvals,
                    )
                )
            self._publish(events)
        return outcome

    def cancel(
        self,
        tenant_id: UUID,
        transfer_id: UUID,
        actor_user_id: UUID,
        reason: str | None = None,
    ) -> Transfer:
        with LogContext.bind(
            tenant_id=str(tenant_id),
            actor_id=str(actor_user_id),
            transfer_id=str(transfer_id),
        ):
            with self.locks.hold(transfer_id):
                with self._transaction("cancel_transfer") as session:
                    transfer = TransferService(session, self.clock, self.policy).cancel(
                        tenant_id, transfer_id, actor_user_id, reason,
                    )
            self._publish([
                transfer_event(
                    TransferEventType.TRANSFER_FAILED,
                    transfer,
                    self.clock.now(),
                    failure_reason=transfer.failure_reason,
                ),
            ])
        return transfer

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_status(self, tenant_id: UUID, transfer_id: UUID) -> TransferProgress:
        with self._transaction("get_transfer_status") as session:
            selector = TransferSelector(session)
            transfer = selector.get_transfer(tenant_id, transfer_id)
            if transfer is None:
                raise TransferNotFoundError(str(transfer_id))
            approvals = selector.list_approvals(tenant_id, transfer_id)
        return TransferProgress(
            transfer=transfer,
            approvals=approvals,
            percentage=approval_percentage(
                transfer.current_approvals, transfer.required_approvals,
            ),
        )

    def list_pending(self, tenant_id: UUID) -> list[Transfer]:
        with self._transaction("list_pending_transfers") as session:
            return TransferSelector(session).list_pending(tenant_id)

    def wallet_history(
        self, tenant_id: UUID, wallet_id: str, limit: int | None = None,
    ) -> list[Transfer]:
        with self._transaction("wallet_history") as session:
            return TransferSelector(session).list_for_wallet(tenant_id, wallet_id, limit)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("storage_failure", extra={"operation": operation}, exc_info=True)
            raise StorageError(operation, type(exc).__name__) from exc

    def _publish(self, events: list[TransferEvent]) -> None:
        publish(self.event_sink, events)
