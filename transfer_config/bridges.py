"""
Config -> Kernel Bridges.

Functions that convert ``EngineConfig`` sections into the plain values the
kernel services consume.  These live in transfer_config (the producer)
because the kernel must never import transfer_config.

Usage:
    from transfer_config.bridges import build_onboarding_template, build_workflow_policy

    config = get_active_config()
    policy = build_workflow_policy(config)
    template = build_onboarding_template(config)
"""

from __future__ import annotations

from datetime import timedelta

from transfer_config.schema import ConfigurationError, EngineConfig, RoleDef
from transfer_kernel.domain.policy import (
    OnboardingTemplate,
    RoleTemplate,
    RuleTemplate,
    WorkflowPolicy,
)
from transfer_kernel.domain.tenancy import Capability


def build_workflow_policy(config: EngineConfig) -> WorkflowPolicy:
    return WorkflowPolicy(
        approval_window=timedelta(hours=config.workflow.approval_window_hours),
        settlement_delay=timedelta(seconds=config.workflow.settlement_delay_seconds),
    )


def _role_capabilities(role: RoleDef) -> frozenset[Capability]:
    capabilities = set()
    for name in role.capabilities:
        try:
            capabilities.add(Capability(name))
        except ValueError:
            raise ConfigurationError(
                f"role '{role.name}' has unknown capability {name!r}"
            ) from None
    return frozenset(capabilities)


def build_onboarding_template(config: EngineConfig) -> OnboardingTemplate:
    """Build the roles and rules every newly registered tenant starts with."""
    roles = tuple(
        RoleTemplate(
            name=role.name,
            level=role.level,
            capabilities=_role_capabilities(role),
            max_transfer_amount=role.max_transfer_amount,
            description=role.description,
        )
        for role in config.onboarding.roles
    )
    rules = tuple(
        RuleTemplate(
            rule_name=rule.rule_name,
            min_amount=rule.min_amount,
            max_amount=rule.max_amount,
            required_approvals=rule.required_approvals,
            required_role_level=rule.required_role_level,
            auto_approve=rule.auto_approve,
        )
        for rule in config.onboarding.rules
    )
    return OnboardingTemplate(roles=roles, rules=rules)
