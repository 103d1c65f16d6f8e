# schemas.py
# Pydantic models for request validation and response serialization.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from transfer_kernel.domain.tenancy import ApprovalRule, Role, Tenant, User
from transfer_kernel.domain.transfer import (
    ApprovalOutcome,
    ApprovalRecord,
    InitiationResult,
    Transfer,
    TransferProgress,
)
from transfer_kernel.selectors.notification_selector import Notification


def format_amount(amount: Decimal | None) -> str | None:
    """Plain decimal notation without trailing zeros."""
    if amount is None:
        return None
    return f"{amount.normalize():f}"


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


# ==================== REQUESTS ====================


class InitiateTransferRequest(_Request):
    source_wallet_id: str = Field(
        min_length=1, max_length=100,
        validation_alias=AliasChoices("source_wallet_id", "fromWalletId"),
    )
    destination_wallet_id: str = Field(
        min_length=1, max_length=100,
        validation_alias=AliasChoices("destination_wallet_id", "toWalletId"),
    )
    amount: Decimal
    currency: str = Field(min_length=1, max_length=10)
    initiated_by: UUID
    reason: str | None = Field(default=None, max_length=500)


class ApproveTransferRequest(_Request):
    approver_user_id: UUID
    comments: str | None = Field(default=None, max_length=1000)


class CancelTransferRequest(_Request):
    actor_user_id: UUID
    reason: str | None = Field(default=None, max_length=500)


class RegisterBankRequest(_Request):
    bank_name: str = Field(min_length=1, max_length=200)
    bank_code: str = Field(min_length=1, max_length=20)
    contact_email: str = Field(min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+$")
    country: str | None = Field(default=None, max_length=50)


class CreateUserRequest(_Request):
    username: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+$")
    full_name: str = Field(min_length=1, max_length=200)
    role_name: str = Field(min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_id: str | None = Field(default=None, max_length=50)


class UpdateUserRequest(_Request):
    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=200, pattern=r"^[^@\s]+@[^@\s]+$")
    role_name: str | None = Field(default=None, min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_id: str | None = Field(default=None, max_length=50)
    status: str | None = None


class CreateRuleRequest(_Request):
    rule_name: str = Field(min_length=1, max_length=100)
    min_amount: Decimal
    max_amount: Decimal | None = None
    required_approvals: int = Field(ge=0)
    required_role_level: int = Field(ge=1)
    auto_approve: bool = False


class UpdateRuleRequest(_Request):
    rule_name: str | None = Field(default=None, min_length=1, max_length=100)
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    required_approvals: int | None = Field(default=None, ge=0)
    required_role_level: int | None = Field(default=None, ge=1)
    auto_approve: bool | None = None


# ==================== RESPONSES ====================


class TransferOut(BaseModel):
    id: UUID
    reference: str
    source_wallet_id: str
    destination_wallet_id: str
    amount: str
    currency: str
    reason: str | None
    initiated_by: UUID
    status: str
    approval_status: str
    required_approvals: int
    current_approvals: int
    required_role_level: int
    rule_name: str
    initiated_at: datetime
    approval_deadline: datetime | None
    approved_at: datetime | None
    completed_at: datetime | None
    failed_at: datetime | None
    failure_reason: str | None

    @classmethod
    def from_domain(cls, t: Transfer) -> "TransferOut":
        return cls(
            id=t.transfer_id,
            reference=t.reference,
            source_wallet_id=t.source_wallet_id,
            destination_wallet_id=t.destination_wallet_id,
            amount=format_amount(t.amount),
            currency=t.currency,
            reason=t.reason,
            initiated_by=t.initiated_by,
            status=t.status.value,
            approval_status=t.approval_status.value,
            required_approvals=t.required_approvals,
            current_approvals=t.current_approvals,
            required_role_level=t.rule.required_role_level,
            rule_name=t.rule.rule_name,
            initiated_at=t.initiated_at,
            approval_deadline=t.approval_deadline,
            approved_at=t.approved_at,
            completed_at=t.completed_at,
            failed_at=t.failed_at,
            failure_reason=t.failure_reason,
        )


class InitiateTransferResponse(BaseModel):
    message: str
    transfer: TransferOut
    next_steps: list[str]

    @classmethod
    def from_domain(cls, result: InitiationResult) -> "InitiateTransferResponse":
        message = (
            "Transfer initiated and auto-approved"
            if result.auto_approved
            else "Transfer initiated - pending approval"
        )
        return cls(
            message=message,
            transfer=TransferOut.from_domain(result.transfer),
            next_steps=list(result.next_steps),
        )


class ApprovalOut(BaseModel):
    id: UUID
    approver_user_id: UUID
    approver_name: str | None
    approver_role: str
    approver_level: int
    approval_method: str
    comments: str | None
    approved_at: datetime

    @classmethod
    def from_domain(cls, r: ApprovalRecord) -> "ApprovalOut":
        return cls(
            id=r.record_id,
            approver_user_id=r.approver_user_id,
            approver_name=r.approver_name,
            approver_role=r.approver_role,
            approver_level=r.approver_level,
            approval_method=r.approval_method,
            comments=r.comments,
            approved_at=r.approved_at,
        )


class ApproveTransferResponse(BaseModel):
    message: str
    transfer_id: UUID
    status: str
    approval_status: str
    current_approvals: int
    required_approvals: int
    threshold_reached: bool
    approval: ApprovalOut

    @classmethod
    def from_domain(cls, outcome: ApprovalOutcome) -> "ApproveTransferResponse":
        message = (
            "Transfer fully approved and processing"
            if outcome.threshold_reached
            else "Approval recorded"
        )
        return cls(
            message=message,
            transfer_id=outcome.transfer.transfer_id,
            status=outcome.status.value,
            approval_status=outcome.transfer.approval_status.value,
            current_approvals=outcome.current_approvals,
            required_approvals=outcome.required_approvals,
            threshold_reached=outcome.threshold_reached,
            approval=ApprovalOut.from_domain(outcome.record),
        )


class TransferStatusResponse(BaseModel):
    transfer: TransferOut
    status: str
    approval_status: str
    current_approvals: int
    required_approvals: int
    percentage: int
    approvals: list[ApprovalOut]

    @classmethod
    def from_domain(cls, progress: TransferProgress) -> "TransferStatusResponse":
        t = progress.transfer
        return cls(
            transfer=TransferOut.from_domain(t),
            status=t.status.value,
            approval_status=t.approval_status.value,
            current_approvals=progress.approved,
            required_approvals=progress.required,
            percentage=progress.percentage,
            approvals=[ApprovalOut.from_domain(a) for a in progress.approvals],
        )


class PendingTransfersResponse(BaseModel):
    count: int
    transfers: list[TransferOut]


class WalletTransferOut(TransferOut):
    direction: str
    counterparty_wallet_id: str

    @classmethod
    def for_wallet(cls, t: Transfer, wallet_id: str) -> "WalletTransferOut":
        return cls(
            **TransferOut.from_domain(t).model_dump(),
            direction=t.direction_for(wallet_id).value,
            counterparty_wallet_id=t.counterparty_of(wallet_id),
        )


class WalletHistoryResponse(BaseModel):
    wallet_id: str
    total_transfers: int
    transfers: list[WalletTransferOut]


class BankOut(BaseModel):
    id: UUID
    bank_name: str
    bank_code: str
    contact_email: str
    country: str | None
    status: str
    created_at: datetime

    @classmethod
    def from_domain(cls, t: Tenant) -> "BankOut":
        return cls(
            id=t.tenant_id,
            bank_name=t.name,
            bank_code=t.code,
            contact_email=t.contact_email,
            country=t.country,
            status=t.status.value,
            created_at=t.created_at,
        )


class RegisterBankResponse(BaseModel):
    message: str
    bank: BankOut
    api_key: str


class UserOut(BaseModel):
    id: UUID
    username: str
    email: str
    full_name: str
    role_name: str
    role_level: int
    status: str
    department: str | None
    employee_id: str | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, u: User) -> "UserOut":
        return cls(
            id=u.user_id,
            username=u.username,
            email=u.email,
            full_name=u.full_name,
            role_name=u.role_name,
            role_level=u.role_level,
            status=u.status.value,
            department=u.department,
            employee_id=u.employee_id,
            created_at=u.created_at,
        )


class RoleOut(BaseModel):
    id: UUID
    name: str
    level: int
    capabilities: list[str]
    max_transfer_amount: str | None
    description: str | None

    @classmethod
    def from_domain(cls, r: Role) -> "RoleOut":
        return cls(
            id=r.role_id,
            name=r.name,
            level=r.level,
            capabilities=sorted(c.value for c in r.capabilities),
            max_transfer_amount=format_amount(r.max_transfer_amount),
            description=r.description,
        )


class RuleOut(BaseModel):
    id: UUID
    rule_name: str
    min_amount: str
    max_amount: str | None
    required_approvals: int
    required_role_level: int
    auto_approve: bool

    @classmethod
    def from_domain(cls, r: ApprovalRule) -> "RuleOut":
        return cls(
            id=r.rule_id,
            rule_name=r.rule_name,
            min_amount=format_amount(r.min_amount),
            max_amount=format_amount(r.max_amount),
            required_approvals=r.required_approvals,
            required_role_level=r.required_role_level,
            auto_approve=r.auto_approve,
        )


class NotificationOut(BaseModel):
    id: UUID
    transfer_id: UUID | None
    notification_type: str
    title: str
    message: str
    priority: str
    details: dict[str, Any]
    is_read: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, n: Notification) -> "NotificationOut":
        return cls(
            id=n.notification_id,
            transfer_id=n.transfer_id,
            notification_type=n.notification_type,
            title=n.title,
            message=n.message,
            priority=n.priority,
            details=n.details,
            is_read=n.is_read,
            created_at=n.created_at,
        )
