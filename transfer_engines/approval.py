"""
transfer_engines.approval -- Pure approval rule evaluation engine.

Responsibility:
    Decide which approval rule governs an amount, freeze it onto a transfer,
    and express how far along a transfer's approvals are.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import transfer_kernel/domain/ types.

Invariants enforced:
    - Resolution is total: every amount yields a rule.  When no configured
      band covers the amount, a ``DefaultRule`` at the tenant's lowest role
      level is returned.
    - Resolution is deterministic: among matching bands the largest
      ``min_amount`` wins; ties go to the narrower band (smaller
      ``max_amount``, unbounded last), then to rule name, then to rule id.
    - Purity: no clock access, no I/O, no database.

Failure modes:
    - None.  Functions here never raise for well-typed input.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from transfer_kernel.domain.tenancy import ApprovalRule, DefaultRule, ResolvedRule
from transfer_kernel.domain.transfer import RuleSnapshot


def rule_precedence_key(rule: ApprovalRule) -> tuple:
    """Sort key putting the most specific band first."""
    return (
        -rule.min_amount,
        rule.max_amount is None,
        rule.max_amount if rule.max_amount is not None else Decimal(0),
        rule.rule_name,
        str(rule.rule_id),
    )


def select_matching_rule(
    rules: Iterable[ApprovalRule],
    amount: Decimal,
) -> ApprovalRule | None:
    """Return the most specific configured rule whose band contains ``amount``."""
    candidates = [r for r in rules if r.matches(amount)]
    if not candidates:
        return None
    return min(candidates, key=rule_precedence_key)


def resolve_rule(
    rules: Iterable[ApprovalRule],
    amount: Decimal,
    lowest_role_level: int = 1,
) -> ResolvedRule:
    """Determine the approval requirement for a transfer amount.

    Args:
        rules: The tenant's configured rules, in any order.
        amount: The transfer amount.
        lowest_role_level: The lowest role level defined in the tenant,
            used as the fallback's required level.

    Returns:
        The matching ``ApprovalRule``, or a ``DefaultRule`` when none match.
    """
    rule = select_matching_rule(rules, amount)
    if rule is None:
        return DefaultRule(required_role_level=lowest_role_level)
    return rule


def snapshot_rule(rule: ResolvedRule) -> RuleSnapshot:
    """Freeze the parts of a rule a transfer keeps for its lifetime."""
    return RuleSnapshot(
        rule_name=rule.rule_name,
        auto_approve=rule.auto_approve,
        required_approvals=0 if rule.auto_approve else rule.required_approvals,
        required_role_level=rule.required_role_level,
        is_default=rule.is_default,
        rule_id=rule.rule_id,
    )


def approval_percentage(current_approvals: int, required_approvals: int) -> int:
    """``100 * current / required`` rounded half up; 0 when nothing is required."""
    if required_approvals <= 0:
        return 0
    ratio = Decimal(100 * current_approvals) / Decimal(required_approvals)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def approval_next_steps(snapshot: RuleSnapshot) -> tuple[str, ...]:
    """Human-facing hints returned to the initiator of a pending transfer."""
    if snapshot.auto_approve:
        return ()
    return (
        "Transfer requires approval",
        f"Required approvals: {snapshot.required_approvals}",
        f"Required role level: {snapshot.required_role_level}",
        "Use the approval endpoint to approve this transfer",
    )
