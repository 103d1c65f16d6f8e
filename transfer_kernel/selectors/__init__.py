"""Read-only query selectors."""

from transfer_kernel.selectors.notification_selector import (
    Notification,
    NotificationSelector,
)
from transfer_kernel.selectors.rule_selector import RuleSelector
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.selectors.transfer_selector import TransferSelector

__all__ = [
    "Notification",
    "NotificationSelector",
    "RuleSelector",
    "TenantSelector",
    "TransferSelector",
]
