"""
Tenancy -- tenants, roles, users and approval rules as immutable values.

Responsibility:
    Pure value objects describing WHO may act inside a tenant and WHICH
    approval requirements apply to which amount bands.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Role levels are integers >= 1; capabilities are a closed enum.
    - An ApprovalRule band is ``min_amount <= amount <= max_amount`` with an
      absent ``max_amount`` meaning unbounded.
    - ``DefaultRule`` is the explicit fallback variant: it auto-approves and
      is distinguishable from every configured rule via ``is_default``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TenantStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Capability(str, Enum):
    """What a role may do.  Approval authority itself is governed by level."""

    VIEW_REPORTS = "view_reports"
    INITIATE_TRANSFERS = "initiate_transfers"
    APPROVE_TRANSFERS = "approve_transfers"
    CREATE_USERS = "create_users"
    MODIFY_SETTINGS = "modify_settings"


@dataclass(frozen=True)
class Tenant:
    tenant_id: UUID
    name: str
    code: str
    contact_email: str
    country: str | None
    status: TenantStatus
    created_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE


@dataclass(frozen=True)
class Role:
    """A named authority tier within one tenant."""

    role_id: UUID
    tenant_id: UUID
    name: str
    level: int
    capabilities: frozenset[Capability] = field(default_factory=frozenset)
    max_transfer_amount: Decimal | None = None
    description: str | None = None

    @property
    def can_approve_transfers(self) -> bool:
        return Capability.APPROVE_TRANSFERS in self.capabilities

    @property
    def can_create_users(self) -> bool:
        return Capability.CREATE_USERS in self.capabilities

    @property
    def can_modify_settings(self) -> bool:
        return Capability.MODIFY_SETTINGS in self.capabilities


@dataclass(frozen=True)
class User:
    """
    A tenant member.

    ``role_level`` is taken from the role definition at load time, so a
    role-level change is visible on the next lookup.
    """

    user_id: UUID
    tenant_id: UUID
    username: str
    email: str
    full_name: str
    role_name: str
    role_level: int
    status: UserStatus
    department: str | None = None
    employee_id: str | None = None
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


@dataclass(frozen=True)
class ApprovalRule:
    """A configured amount band and the approval it requires."""

    rule_id: UUID
    tenant_id: UUID
    rule_name: str
    min_amount: Decimal
    max_amount: Decimal | None
    required_approvals: int
    required_role_level: int
    auto_approve: bool
    created_at: datetime | None = None

    is_default = False

    def matches(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount


@dataclass(frozen=True)
class DefaultRule:
    """Fallback returned when no configured rule covers an amount."""

    required_role_level: int = 1
    rule_name: str = "default"
    auto_approve: bool = True
    required_approvals: int = 0

    is_default = True
    rule_id = None


ResolvedRule = ApprovalRule | DefaultRule
