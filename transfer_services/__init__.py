"""
transfer_services -- orchestration over the kernel and engines.

Owns transaction boundaries, per-transfer serialization, settlement
scheduling and post-commit event delivery.
"""

from transfer_services.approval_engine import ApprovalEngine
from transfer_services.event_sinks import (
    CompositeEventSink,
    LoggingEventSink,
    NotificationEventSink,
    publish,
    transfer_event,
)
from transfer_services.locks import TransferLockRegistry
from transfer_services.rule_resolver import resolve_tenant_rule
from transfer_services.settlement_gateway import SimulatedSettlementGateway
from transfer_services.settlement_scheduler import SettlementScheduler, TickReport

__all__ = [
    "ApprovalEngine",
    "CompositeEventSink",
    "LoggingEventSink",
    "NotificationEventSink",
    "SettlementScheduler",
    "SimulatedSettlementGateway",
    "TickReport",
    "TransferLockRegistry",
    "publish",
    "resolve_tenant_rule",
    "transfer_event",
]
