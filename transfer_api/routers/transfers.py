"""API routes for the transfer approval workflow."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from transfer_api.deps import ApprovalEngineDep, CurrentTenantDep
from transfer_api.schemas import (
    ApproveTransferRequest,
    ApproveTransferResponse,
    CancelTransferRequest,
    InitiateTransferRequest,
    InitiateTransferResponse,
    PendingTransfersResponse,
    TransferOut,
    TransferStatusResponse,
    WalletHistoryResponse,
    WalletTransferOut,
)

router = APIRouter(prefix="/api/transfers", tags=["transfers"])


@router.post(
    "/initiate",
    status_code=status.HTTP_201_CREATED,
    response_model=InitiateTransferResponse,
)
def initiate_transfer(
    body: InitiateTransferRequest,
    tenant: CurrentTenantDep,
    engine: ApprovalEngineDep,
):
    result = engine.initiate(
        tenant_id=tenant.tenant_id,
        initiated_by=body.initiated_by,
        amount=body.amount,
        currency=body.currency,
        source_wallet_id=body.source_wallet_id,
        destination_wallet_id=body.destination_wallet_id,
        reason=body.reason,
    )
    return InitiateTransferResponse.from_domain(result)


@router.post("/{transfer_id}/approve", response_model=ApproveTransferResponse)
def approve_transfer(
    transfer_id: UUID,
    body: ApproveTransferRequest,
    tenant: CurrentTenantDep,
    engine: ApprovalEngineDep,
):
    outcome = engine.approve(
        tenant.tenant_id, transfer_id, body.approver_user_id, body.comments,
    )
    return ApproveTransferResponse.from_domain(outcome)


@router.get("/pending", response_model=PendingTransfersResponse)
def list_pending_transfers(tenant: CurrentTenantDep, engine: ApprovalEngineDep):
    transfers = engine.list_pending(tenant.tenant_id)
    return PendingTransfersResponse(
        count=len(transfers),
        transfers=[TransferOut.from_domain(t) for t in transfers],
    )


@router.get("/history/{wallet_id}", response_model=WalletHistoryResponse)
def get_wallet_history(
    wallet_id: str,
    tenant: CurrentTenantDep,
    engine: ApprovalEngineDep,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
):
    """Transfers into or out of one wallet, in any status, newest first."""
    wallet_id = wallet_id.strip()
    transfers = engine.wallet_history(tenant.tenant_id, wallet_id, limit)
    return WalletHistoryResponse(
        wallet_id=wallet_id,
        total_transfers=len(transfers),
        transfers=[WalletTransferOut.for_wallet(t, wallet_id) for t in transfers],
    )


@router.get("/{transfer_id}/status", response_model=TransferStatusResponse)
def get_transfer_status(
    transfer_id: UUID,
    tenant: CurrentTenantDep,
    engine: ApprovalEngineDep,
):
    return TransferStatusResponse.from_domain(engine.get_status(tenant.tenant_id, transfer_id))


@router.post("/{transfer_id}/cancel", response_model=TransferOut)
def cancel_transfer(
    transfer_id: UUID,
    body: CancelTransferRequest,
    tenant: CurrentTenantDep,
    engine: ApprovalEngineDep,
):
    """Fail a transfer that has not settled yet."""
    transfer = engine.cancel(tenant.tenant_id, transfer_id, body.actor_user_id, body.reason)
    return TransferOut.from_domain(transfer)
