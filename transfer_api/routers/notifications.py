"""API routes for tenant notifications produced by transfer events."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from transfer_api.deps import CurrentTenantDep, SessionFactoryDep
from transfer_api.schemas import NotificationOut
from transfer_kernel.db.engine import session_scope
from transfer_kernel.selectors.notification_selector import NotificationSelector
from transfer_kernel.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/list", response_model=list[NotificationOut])
def list_notifications(
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
    unread_only: bool = False,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
):
    with session_scope(session_factory) as session:
        notifications = NotificationSelector(session).list_for_tenant(
            tenant.tenant_id, unread_only=unread_only, limit=limit,
        )
    return [NotificationOut.from_domain(n) for n in notifications]


@router.post("/{notification_id}/mark-read")
def mark_notification_read(
    notification_id: UUID,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
):
    with session_scope(session_factory) as session:
        NotificationService(session).mark_read(tenant.tenant_id, notification_id)
    return {"notification_id": str(notification_id), "is_read": True}
