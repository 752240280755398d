from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.attendance import Attendance, AttendanceStatus  # noqa: F401
from app.models.attendance_point import (  # noqa: F401
    AttendancePoint,
    AttendancePointStatus,
    AttendancePointType,
)
from app.models.leave_approval_event import ApprovalAction, ApprovalSeat, LeaveApprovalEvent  # noqa: F401
from app.models.leave_credit import REGULARIZATION_MONTH, LeaveCredit  # noqa: F401
from app.models.leave_denied_date import LeaveDeniedDate  # noqa: F401
from app.models.leave_regularization_credit import LeaveRegularizationCredit  # noqa: F401
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType  # noqa: F401
from app.models.notification import Notification, NotificationType  # noqa: F401
from app.models.user import MANAGER_ROLES, REVIEWER_ROLES, User, UserRole  # noqa: F401
