"""
Module: transfer_engines
Responsibility:
    Package entrypoint that re-exports the pure calculation engines.  This is
    the canonical import surface for higher layers (kernel selectors and
    services, transfer_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import transfer_kernel/domain.
    MUST NOT import transfer_services or transfer_api.

Invariants enforced:
    - Purity: engines NEVER read the clock.
    - Decimal-only arithmetic for amounts and percentages.
    - Determinism: identical inputs always produce identical outputs.
"""

from transfer_engines.approval import (
    approval_next_steps,
    approval_percentage,
    resolve_rule,
    rule_precedence_key,
    select_matching_rule,
    snapshot_rule,
)

__all__ = [
    "approval_next_steps",
    "approval_percentage",
    "resolve_rule",
    "rule_precedence_key",
    "select_matching_rule",
    "snapshot_rule",
]
