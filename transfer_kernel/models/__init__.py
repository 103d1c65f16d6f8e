"""ORM models for the transfer kernel."""

from transfer_kernel.models.approval_record import ApprovalRecordModel
from transfer_kernel.models.approval_rule import ApprovalRuleModel
from transfer_kernel.models.notification import NotificationModel
from transfer_kernel.models.sequence import SequenceCounter
from transfer_kernel.models.settlement import SettlementJobModel
from transfer_kernel.models.tenant import RoleModel, TenantModel, UserModel
from transfer_kernel.models.transfer import TransferModel

__all__ = [
    "ApprovalRecordModel",
    "ApprovalRuleModel",
    "NotificationModel",
    "RoleModel",
    "SequenceCounter",
    "SettlementJobModel",
    "TenantModel",
    "TransferModel",
    "UserModel",
]
