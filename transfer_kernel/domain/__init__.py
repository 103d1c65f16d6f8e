"""
Pure domain layer.

Value objects and state rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (other than the Clock abstraction)
- I/O

All domain objects are immutable and deterministic.
"""

from transfer_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from transfer_kernel.domain.events import EventSink, TransferEvent, TransferEventType
from transfer_kernel.domain.policy import (
    OnboardingTemplate,
    RoleTemplate,
    RuleTemplate,
    WorkflowPolicy,
)
from transfer_kernel.domain.settlement import (
    SettlementGateway,
    SettlementJobStatus,
    SettlementOutcome,
    SettlementResult,
)
from transfer_kernel.domain.tenancy import (
    ApprovalRule,
    Capability,
    DefaultRule,
    ResolvedRule,
    Role,
    Tenant,
    TenantStatus,
    User,
    UserStatus,
)
from transfer_kernel.domain.transfer import (
    IN_FLIGHT_STATUSES,
    TERMINAL_TRANSFER_STATUSES,
    TRANSFER_TRANSITIONS,
    ApprovalOutcome,
    ApprovalRecord,
    ApprovalState,
    FailureReason,
    InitiationResult,
    RuleSnapshot,
    Transfer,
    TransferProgress,
    TransferStatus,
    WalletDirection,
    validate_transition,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "EventSink",
    "TransferEvent",
    "TransferEventType",
    "OnboardingTemplate",
    "RoleTemplate",
    "RuleTemplate",
    "WorkflowPolicy",
    "SettlementGateway",
    "SettlementJobStatus",
    "SettlementOutcome",
    "SettlementResult",
    "ApprovalRule",
    "Capability",
    "DefaultRule",
    "ResolvedRule",
    "Role",
    "Tenant",
    "TenantStatus",
    "User",
    "UserStatus",
    "IN_FLIGHT_STATUSES",
    "TERMINAL_TRANSFER_STATUSES",
    "TRANSFER_TRANSITIONS",
    "ApprovalOutcome",
    "ApprovalRecord",
    "ApprovalState",
    "FailureReason",
    "InitiationResult",
    "RuleSnapshot",
    "Transfer",
    "TransferProgress",
    "TransferStatus",
    "WalletDirection",
    "validate_transition",
]
