"""
Module: transfer_kernel.selectors.transfer_selector
Responsibility: Read access to transfers and their approval records.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Pure reads: status queries and pending listings never change state.
    - Tenant scoping on every query.
    - Approvals are returned in the order they were granted.
    - Pending listing and wallet history order is newest first, ties
      broken by reference sequence (newest first).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from transfer_kernel.domain.transfer import (
    IN_FLIGHT_STATUSES,
    ApprovalRecord,
    Transfer,
)
from transfer_kernel.models.approval_record import ApprovalRecordModel
from transfer_kernel.models.tenant import UserModel
from transfer_kernel.models.transfer import TransferModel
from transfer_kernel.selectors.base import BaseSelector


class TransferSelector(BaseSelector):
    def get_transfer(self, tenant_id: UUID, transfer_id: UUID) -> Transfer | None:
        model = self.session.execute(
            select(TransferModel).where(
                TransferModel.id == transfer_id,
                TransferModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_approvals(
        self, tenant_id: UUID, transfer_id: UUID,
    ) -> tuple[ApprovalRecord, ...]:
        """Approval records with the approver's name, oldest first."""
        rows = self.session.execute(
            select(ApprovalRecordModel, UserModel.full_name)
            .join(UserModel, UserModel.id == ApprovalRecordModel.approver_user_id)
            .where(
                ApprovalRecordModel.transfer_id == transfer_id,
                ApprovalRecordModel.tenant_id == tenant_id,
            )
            .order_by(ApprovalRecordModel.approved_at, ApprovalRecordModel.id)
        ).all()
        return tuple(record.to_dto(approver_name=name) for record, name in rows)

    def list_pending(self, tenant_id: UUID) -> list[Transfer]:
        """Transfers awaiting approval or settlement, newest first."""
        rows = self.session.execute(
            select(TransferModel)
            .where(
                TransferModel.tenant_id == tenant_id,
                TransferModel.status.in_([s.value for s in IN_FLIGHT_STATUSES]),
            )
            .order_by(
                TransferModel.initiated_at.desc(),
                TransferModel.sequence.desc(),
            )
        ).scalars().all()
        return [t.to_dto() for t in rows]

    def list_for_wallet(
        self, tenant_id: UUID, wallet_id: str, limit: int | None = None,
    ) -> list[Transfer]:
        """Every transfer into or out of ``wallet_id``, in any status, newest first."""
        wallet_id = wallet_id.strip()
        query = (
            select(TransferModel)
            .where(
                TransferModel.tenant_id == tenant_id,
                or_(
                    TransferModel.source_wallet_id == wallet_id,
                    TransferModel.destination_wallet_id == wallet_id,
                ),
            )
            .order_by(
                TransferModel.initiated_at.desc(),
                TransferModel.sequence.desc(),
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return [t.to_dto() for t in self.session.execute(query).scalars().all()]
