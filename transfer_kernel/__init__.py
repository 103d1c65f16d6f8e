"""
Transfer Kernel

A multi-tenant transfer approval workflow with:
- Amount-banded approval rules resolved per tenant
- Role-level gated, append-only approval records
- Atomic threshold detection under concurrent approvals
- Deferred, failure-aware settlement
"""

__version__ = "0.1.0"
