"""
Rule resolution against a tenant's stored rule table.

Loads the tenant's rules and lowest role level through the kernel
selectors and hands them to the pure resolver in ``transfer_engines``.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from transfer_engines.approval import resolve_rule
from transfer_kernel.domain.tenancy import ResolvedRule
from transfer_kernel.selectors.rule_selector import RuleSelector
from transfer_kernel.selectors.tenant_selector import TenantSelector


def resolve_tenant_rule(session: Session, tenant_id: UUID, amount: Decimal) -> ResolvedRule:
    """The rule governing ``amount`` for this tenant.  Never raises on no match."""
    rules = RuleSelector(session).list_rules(tenant_id)
    lowest = TenantSelector(session).lowest_role_level(tenant_id)
    return resolve_rule(rules, amount, lowest_role_level=lowest or 1)
