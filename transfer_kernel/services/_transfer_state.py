"""Shared status mutation for transfer rows.  Every status write goes through here."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from transfer_kernel.domain.transfer import TransferStatus, validate_transition
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.transfer import TransferModel

logger = get_logger("services.transfer_state")


def lock_transfer(session: Session, transfer_id, tenant_id=None) -> TransferModel | None:
    """Load a transfer row ``FOR UPDATE``, optionally scoped to a tenant."""
    query = select(TransferModel).where(TransferModel.id == transfer_id)
    if tenant_id is not None:
        query = query.where(TransferModel.tenant_id == tenant_id)
    return session.execute(
        query.with_for_update().execution_options(populate_existing=True)
    ).scalar_one_or_none()


def transition_transfer(
    model: TransferModel,
    to_status: TransferStatus,
    now: datetime,
    failure_reason: str | None = None,
) -> None:
    """Move ``model`` to ``to_status`` and stamp the matching timestamp."""
    from_status = TransferStatus(model.status)
    validate_transition(model.id, from_status, to_status)

    model.status = to_status.value
    if to_status == TransferStatus.COMPLETED:
        model.completed_at = now
    elif to_status == TransferStatus.FAILED:
        model.failed_at = now
        model.failure_reason = failure_reason

    logger.info(
        "transfer_status_changed",
        extra={
            "transfer_id": str(model.id),
            "tenant_id": str(model.tenant_id),
            "from_status": from_status.value,
            "to_status": to_status.value,
            "failure_reason": failure_reason,
        },
    )
