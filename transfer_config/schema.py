"""
Configuration Schema (``transfer_config.schema``).

Responsibility
--------------
Frozen dataclasses describing the engine's configuration as loaded from
YAML.  They carry values only; the loader validates, the bridges translate
them into kernel inputs.

Architecture position
---------------------
**Config layer**.  No dependency on kernel services or the HTTP surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


class ConfigurationError(ValueError):
    """Raised when configuration is missing, malformed or inconsistent."""


@dataclass(frozen=True)
class WorkflowDef:
    approval_window_hours: float = 24.0
    settlement_delay_seconds: float = 5.0


@dataclass(frozen=True)
class RoleDef:
    name: str
    level: int
    capabilities: tuple[str, ...] = ()
    max_transfer_amount: Decimal | None = None
    description: str | None = None


@dataclass(frozen=True)
class RuleDef:
    rule_name: str
    min_amount: Decimal
    max_amount: Decimal | None
    required_approvals: int
    required_role_level: int
    auto_approve: bool = False


@dataclass(frozen=True)
class OnboardingDef:
    roles: tuple[RoleDef, ...] = ()
    rules: tuple[RuleDef, ...] = ()


@dataclass(frozen=True)
class DatabaseDef:
    url: str = "sqlite:///transfer_engine.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class SchedulerDef:
    enabled: bool = True
    tick_interval_seconds: float = 5.0


@dataclass(frozen=True)
class LoggingDef:
    level: str = "INFO"


@dataclass(frozen=True)
class EngineConfig:
    """The effective configuration.  ``checksum`` identifies its content."""

    workflow: WorkflowDef = field(default_factory=WorkflowDef)
    onboarding: OnboardingDef = field(default_factory=OnboardingDef)
    database: DatabaseDef = field(default_factory=DatabaseDef)
    scheduler: SchedulerDef = field(default_factory=SchedulerDef)
    logging: LoggingDef = field(default_factory=LoggingDef)
    checksum: str = ""
