from teamdesk.models.user import User
from teamdesk.models.leave_request import LeaveRequest, LeaveAttachment
from teamdesk.models.audit_log import LeaveAuditLog
from teamdesk.models.notification import Notification

__all__ = [
    "User",
    "LeaveRequest",
    "LeaveAttachment",
    "LeaveAuditLog",
    "Notification",
]
