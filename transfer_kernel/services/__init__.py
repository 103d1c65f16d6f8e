"""Write-side kernel services.  All flush, none commit."""

from transfer_kernel.services.approval_service import ApprovalService
from transfer_kernel.services.notification_service import NotificationService
from transfer_kernel.services.role_service import RoleService
from transfer_kernel.services.rule_service import ApprovalRuleService
from transfer_kernel.services.sequence_service import SequenceService
from transfer_kernel.services.settlement_service import SettlementService
from transfer_kernel.services.tenant_service import TenantService
from transfer_kernel.services.transfer_service import TransferService
from transfer_kernel.services.user_service import UserService

__all__ = [
    "ApprovalRuleService",
    "ApprovalService",
    "NotificationService",
    "RoleService",
    "SequenceService",
    "SettlementService",
    "TenantService",
    "TransferService",
    "UserService",
]
