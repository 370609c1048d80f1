from reseller_portal.models.user import User, UserRole
from reseller_portal.models.customer import Customer, CustomerStatus
from reseller_portal.models.auto_approval_rule import AutoApprovalRule
from reseller_portal.models.commission import Commission, CommissionStatus
from reseller_portal.models.audit_log import AuditLog
from reseller_portal.models.notification import Notification, NotificationType

__all__ = [
    "User",
    "UserRole",
    "Customer",
    "CustomerStatus",
    "AutoApprovalRule",
    "Commission",
    "CommissionStatus",
    "AuditLog",
    "Notification",
    "NotificationType",
]
