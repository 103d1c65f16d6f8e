"""
Policy -- kernel-facing workflow settings and onboarding templates.

Responsibility:
    Plain values the services consume.  ``transfer_config`` builds these
    from YAML; the kernel never reads configuration itself.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from transfer_kernel.domain.tenancy import Capability


@dataclass(frozen=True)
class WorkflowPolicy:
    """Timing rules for pending approvals and settlement."""

    approval_window: timedelta = timedelta(hours=24)
    settlement_delay: timedelta = timedelta(seconds=5)


@dataclass(frozen=True)
class RoleTemplate:
    name: str
    level: int
    capabilities: frozenset[Capability] = field(default_factory=frozenset)
    max_transfer_amount: Decimal | None = None
    description: str | None = None


@dataclass(frozen=True)
class RuleTemplate:
    rule_name: str
    min_amount: Decimal
    max_amount: Decimal | None
    required_approvals: int
    required_role_level: int
    auto_approve: bool


@dataclass(frozen=True)
class OnboardingTemplate:
    """Roles and rules every newly registered tenant starts with."""

    roles: tuple[RoleTemplate, ...] = ()
    rules: tuple[RuleTemplate, ...] = ()
