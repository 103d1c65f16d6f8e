"""Read access to per-tenant notifications."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from transfer_kernel.models.notification import NotificationModel
from transfer_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class Notification:
    notification_id: UUID
    tenant_id: UUID
    transfer_id: UUID | None
    notification_type: str
    title: str
    message: str
    priority: str
    details: dict[str, Any]
    is_read: bool
    created_at: datetime


class NotificationSelector(BaseSelector):
    def list_for_tenant(
        self,
        tenant_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        query = select(NotificationModel).where(NotificationModel.tenant_id == tenant_id)
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        rows = self.session.execute(
            query.order_by(NotificationModel.created_at.desc()).limit(limit)
        ).scalars().all()
        return [
            Notification(
                notification_id=n.id,
                tenant_id=n.tenant_id,
                transfer_id=n.transfer_id,
                notification_type=n.notification_type,
                title=n.title,
                message=n.message,
                priority=n.priority,
                details=dict(n.details or {}),
                is_read=n.is_read,
                created_at=n.created_at,
            )
            for n in rows
        ]
