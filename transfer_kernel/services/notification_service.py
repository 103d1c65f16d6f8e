"""
NotificationService -- persists lifecycle events as tenant notifications.

Responsibility:
    Turns a committed ``TransferEvent`` into a notification row the tenant
    can list through the API, and marks notifications read.

Architecture position:
    Kernel > Services.  Called by the notification event sink in
    transfer_services, always in a transaction of its own.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from transfer_kernel.domain.events import TransferEvent, TransferEventType
from transfer_kernel.exceptions import NotificationNotFoundError
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.notification import NotificationModel
from transfer_kernel.services.base import BaseService

logger = get_logger("services.notification")

# event type -> (title, priority)
_NOTIFICATION_STYLE: dict[TransferEventType, tuple[str, str]] = {
    TransferEventType.TRANSFER_INITIATED: ("Transfer initiated", "normal"),
    TransferEventType.APPROVAL_REQUIRED: ("Approval required", "high"),
    TransferEventType.TRANSFER_APPROVED: ("Transfer approved", "normal"),
    TransferEventType.TRANSFER_FULLY_APPROVED: ("Transfer fully approved", "normal"),
    TransferEventType.TRANSFER_COMPLETED: ("Transfer completed", "normal"),
    TransferEventType.TRANSFER_FAILED: ("Transfer failed", "high"),
}


def describe_event(event: TransferEvent) -> str:
    payload = event.payload
    reference = payload.get("reference", str(event.transfer_id))
    amount = payload.get("amount")
    currency = payload.get("currency", "")
    subject = f"Transfer {reference}"
    if amount is not None:
        subject = f"{subject} of {amount} {currency}".rstrip()

    if event.event_type == TransferEventType.APPROVAL_REQUIRED:
        return (
            f"{subject} requires {payload.get('required_approvals')} approval(s) "
            f"at role level {payload.get('required_role_level')}"
        )
    if event.event_type == TransferEventType.TRANSFER_APPROVED:
        return (
            f"{subject} approved ({payload.get('current_approvals')}/"
            f"{payload.get('required_approvals')})"
        )
    if event.event_type == TransferEventType.TRANSFER_FAILED:
        return f"{subject} failed: {payload.get('failure_reason')}"
    return f"{subject} {event.event_type.value.removeprefix('transfer_').replace('_', ' ')}"


class NotificationService(BaseService):
    def record_event(self, event: TransferEvent) -> UUID:
        title, priority = _NOTIFICATION_STYLE[event.event_type]
        model = NotificationModel(
            tenant_id=event.tenant_id,
            transfer_id=event.transfer_id,
            notification_type=event.event_type.value,
            title=title,
            message=describe_event(event),
            priority=priority,
            details={k: str(v) for k, v in event.payload.items()},
            is_read=False,
            created_at=event.occurred_at,
        )
        self.session.add(model)
        self.session.flush()
        logger.debug(
            "notification_recorded",
            extra={"notification_type": event.event_type.value, "tenant_id": str(event.tenant_id)},
        )
        return model.id

    def mark_read(self, tenant_id: UUID, notification_id: UUID) -> None:
        model = self.session.execute(
            select(NotificationModel).where(
                NotificationModel.id == notification_id,
                NotificationModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise NotificationNotFoundError(str(notification_id))
        model.is_read = True
        self.session.flush()
