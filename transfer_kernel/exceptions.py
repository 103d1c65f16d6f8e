"""
Typed Exception Hierarchy for the Transfer Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected operation in the approval workflow has a distinct, stable
reason.  Callers (the HTTP surface, the scheduler, tests) branch on the
exception TYPE and on its ``code``, never on message text.

Every exception carries:
  1. A typed class (catch by type, not message)
  2. A ``code`` class attribute (machine-readable, API-safe)
  3. A ``kind`` class attribute (the category the HTTP surface maps to a status)
  4. Structured attributes (not just a message string)

Example:
    try:
        engine.approve(tenant_id, transfer_id, approver_id)
    except InsufficientRoleLevelError as e:
        respond(403, code=e.code, required=e.required_level, actual=e.actual_level)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TransferKernelError (base)
    |
    +-- ValidationError                     kind=validation
    |   +-- InvalidAmountError
    |   +-- InvalidCurrencyError
    |   +-- InvalidApprovalRuleError
    |   +-- InvalidRoleDefinitionError
    |   +-- InvalidUserStatusError
    |   +-- InvalidTransferRequestError
    |
    +-- AuthenticationError                 kind=authentication
    |   +-- InvalidApiKeyError
    |
    +-- AuthorizationError                  kind=authorization
    |   +-- UnauthorizedInitiatorError
    |   +-- InvalidApproverError
    |   +-- InsufficientRoleLevelError
    |   +-- UnauthorizedActorError
    |
    +-- NotFoundError                       kind=not_found
    |   +-- TenantNotFoundError
    |   +-- TransferNotFoundError
    |   +-- UserNotFoundError
    |   +-- RoleNotFoundError
    |   +-- ApprovalRuleNotFoundError
    |   +-- NotificationNotFoundError
    |
    +-- ConflictError                       kind=conflict
    |   +-- DuplicateApprovalError
    |   +-- AlreadyCompletedError
    |   +-- NoApprovalNeededError
    |   +-- TransferNotPendingError
    |   +-- InvalidTransferTransitionError
    |   +-- ConcurrentApprovalError
    |   +-- DuplicateTenantError
    |   +-- DuplicateUserError
    |   +-- DuplicateRoleError
    |
    +-- InternalError                       kind=internal
        +-- ImmutabilityViolationError
        +-- SettlementFailedError
        +-- StorageError

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ``code`` and ``kind`` are CLASS attributes.  They are static per type and
   readable without instantiation (API documentation, handler tables).

2. All context is stored as attributes.  Exceptions get logged (the JSON
   formatter copies public attributes into ``exc_*`` fields) and rendered
   into API responses via ``to_dict()``.

3. Categories map one-to-one onto HTTP status classes.  The HTTP layer only
   ever looks at ``kind``.

===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Error categories surfaced to callers."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class TransferKernelError(Exception):
    """
    Base exception for all transfer kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "TRANSFER_KERNEL_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL

    @property
    def details(self) -> dict[str, Any]:
        """Public structured attributes of this error."""
        return {
            k: (str(v) if v is not None and not isinstance(v, (int, bool)) else v)
            for k, v in vars(self).items()
            if not k.startswith("_")
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": str(self),
            "details": self.details,
        }


# Validation


class ValidationError(TransferKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"
    kind = ErrorKind.VALIDATION


class InvalidAmountError(ValidationError):
    """Transfer amount is not a positive finite decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Amount must be a positive decimal, got {amount!r}")


class InvalidCurrencyError(ValidationError):
    """Currency code is malformed."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: Any):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


class InvalidApprovalRuleError(ValidationError):
    """Approval rule definition is inconsistent."""

    code: str = "INVALID_APPROVAL_RULE"

    def __init__(self, rule_name: str, reason: str):
        self.rule_name = rule_name
        self.reason = reason
        super().__init__(f"Invalid approval rule '{rule_name}': {reason}")


class InvalidRoleDefinitionError(ValidationError):
    """Role definition is malformed (level, capabilities)."""

    code: str = "INVALID_ROLE_DEFINITION"

    def __init__(self, role_name: str, reason: str):
        self.role_name = role_name
        self.reason = reason
        super().__init__(f"Invalid role '{role_name}': {reason}")


class InvalidUserStatusError(ValidationError):
    """User status value is not recognized."""

    code: str = "INVALID_USER_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid user status: {status!r}")


class InvalidTransferRequestError(ValidationError):
    """A required transfer field is missing or malformed."""

    code: str = "INVALID_TRANSFER_REQUEST"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid transfer request field '{field}': {reason}")


# Authentication


class AuthenticationError(TransferKernelError):
    """Base exception for credential failures."""

    code: str = "AUTHENTICATION_ERROR"
    kind = ErrorKind.AUTHENTICATION


class InvalidApiKeyError(AuthenticationError):
    """API key is missing, unknown, or belongs to an inactive tenant."""

    code: str = "INVALID_API_KEY"

    def __init__(self, reason: str = "Invalid or missing API key"):
        self.reason = reason
        super().__init__(reason)


# Authorization


class AuthorizationError(TransferKernelError):
    """Base exception for actors lacking the right to act."""

    code: str = "AUTHORIZATION_ERROR"
    kind = ErrorKind.AUTHORIZATION


class UnauthorizedInitiatorError(AuthorizationError):
    """Initiator is not an active user of the tenant."""

    code: str = "UNAUTHORIZED_INITIATOR"

    def __init__(self, tenant_id: str, user_id: str):
        self.tenant_id = tenant_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is not authorized to initiate transfers "
            f"for tenant {tenant_id}"
        )


class InvalidApproverError(AuthorizationError):
    """Approver is not an active user of the tenant."""

    code: str = "INVALID_APPROVER"

    def __init__(self, tenant_id: str, user_id: str):
        self.tenant_id = tenant_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is not an active approver for tenant {tenant_id}"
        )


class InsufficientRoleLevelError(AuthorizationError):
    """Approver's role level is below the level the transfer requires."""

    code: str = "INSUFFICIENT_ROLE_LEVEL"

    def __init__(self, user_id: str, required_level: int, actual_level: int):
        self.user_id = user_id
        self.required_level = required_level
        self.actual_level = actual_level
        super().__init__(
            f"Insufficient role level: required {required_level}, "
            f"user {user_id} has {actual_level}"
        )


class UnauthorizedActorError(AuthorizationError):
    """Actor may not perform this operation on the transfer."""

    code: str = "UNAUTHORIZED_ACTOR"

    def __init__(self, user_id: str, action: str):
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id} is not authorized to {action}")


# Not found


class NotFoundError(TransferKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class TenantNotFoundError(NotFoundError):
    code: str = "TENANT_NOT_FOUND"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant not found: {tenant_id}")


class TransferNotFoundError(NotFoundError):
    """Transfer does not exist within the caller's tenant."""

    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(f"Transfer not found: {transfer_id}")


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class RoleNotFoundError(NotFoundError):
    """Role name is not defined in the tenant."""

    code: str = "ROLE_NOT_FOUND"

    def __init__(self, role_name: str, available_roles: list[str] | None = None):
        self.role_name = role_name
        self.available_roles = list(available_roles or [])
        super().__init__(f"Role not found: {role_name}")

    @property
    def details(self) -> dict[str, Any]:
        return {"role_name": self.role_name, "available_roles": self.available_roles}


class ApprovalRuleNotFoundError(NotFoundError):
    code: str = "APPROVAL_RULE_NOT_FOUND"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Approval rule not found: {rule_id}")


class NotificationNotFoundError(NotFoundError):
    code: str = "NOTIFICATION_NOT_FOUND"

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


# Conflict


class ConflictError(TransferKernelError):
    """Base exception for operations that conflict with current state."""

    code: str = "CONFLICT"
    kind = ErrorKind.CONFLICT


class DuplicateApprovalError(ConflictError):
    """The same user already approved this transfer."""

    code: str = "DUPLICATE_APPROVAL"

    def __init__(self, transfer_id: str, user_id: str):
        self.transfer_id = transfer_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} has already approved transfer {transfer_id}"
        )


class AlreadyCompletedError(ConflictError):
    code: str = "ALREADY_COMPLETED"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(f"Transfer {transfer_id} is already completed")


class NoApprovalNeededError(ConflictError):
    """Transfer was auto-approved and accepts no approvals."""

    code: str = "NO_APPROVAL_NEEDED"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(
            f"Transfer {transfer_id} was auto-approved; no approval needed"
        )


class TransferNotPendingError(ConflictError):
    """Transfer is no longer awaiting approvals (approved or failed)."""

    code: str = "TRANSFER_NOT_PENDING"

    def __init__(self, transfer_id: str, status: str):
        self.transfer_id = transfer_id
        self.status = status
        super().__init__(
            f"Transfer {transfer_id} is not pending approval (status: {status})"
        )


class InvalidTransferTransitionError(ConflictError):
    code: str = "INVALID_TRANSFER_TRANSITION"

    def __init__(self, transfer_id: str, from_status: str, to_status: str):
        self.transfer_id = transfer_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Transfer {transfer_id} cannot move from {from_status} to {to_status}"
        )


class ConcurrentApprovalError(ConflictError):
    """Guarded approval increment matched no row."""

    code: str = "CONCURRENT_APPROVAL"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(
            f"Transfer {transfer_id} changed while the approval was being recorded"
        )


class DuplicateTenantError(ConflictError):
    code: str = "DUPLICATE_TENANT"

    def __init__(self, name: str, code_value: str):
        self.name = name
        self.tenant_code = code_value
        super().__init__(
            f"Tenant with name '{name}' or code '{code_value}' already exists"
        )


class DuplicateUserError(ConflictError):
    code: str = "DUPLICATE_USER"

    def __init__(self, username: str, email: str):
        self.username = username
        self.email = email
        super().__init__(
            f"User with username '{username}' or email '{email}' already exists"
        )


class DuplicateRoleError(ConflictError):
    code: str = "DUPLICATE_ROLE"

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role already exists: {role_name}")


# Internal


class InternalError(TransferKernelError):
    """Base exception for failures that are not the caller's fault."""

    code: str = "INTERNAL_ERROR"
    kind = ErrorKind.INTERNAL


class ImmutabilityViolationError(InternalError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class SettlementFailedError(InternalError):
    """The settlement gateway rejected or could not complete a transfer."""

    code: str = "SETTLEMENT_FAILED"

    def __init__(self, transfer_id: str, reason: str):
        self.transfer_id = transfer_id
        self.reason = reason
        super().__init__(f"Settlement failed for transfer {transfer_id}: {reason}")


class StorageError(InternalError):
    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage failure during {operation}: {reason}")
