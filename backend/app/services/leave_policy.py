from __future__ import annotations

from dataclasses import dataclass

from app.models.leave_request import LeaveType


@dataclass(frozen=True)
class LeavePolicy:
    credit_bearing: bool
    weekend_restricted: bool
    requires_certificate: bool = False
    short_notice_checked: bool = False
    conflict_checked: bool = False
    attendance_points_checked: bool = False
    absence_window_checked: bool = False
    backdate_allowed: bool = False


LEAVE_POLICIES: dict[LeaveType, LeavePolicy] = {
    LeaveType.VL: LeavePolicy(
        credit_bearing=True,
        weekend_restricted=True,
        short_notice_checked=True,
        conflict_checked=True,
        attendance_points_checked=True,
        absence_window_checked=True,
    ),
    LeaveType.SL: LeavePolicy(
        credit_bearing=True,
        weekend_restricted=True,
        requires_certificate=True,
        backdate_allowed=True,
    ),
    LeaveType.BL: LeavePolicy(
        credit_bearing=False,
        weekend_restricted=True,
        short_notice_checked=True,
        attendance_points_checked=True,
    ),
    LeaveType.SPL: LeavePolicy(credit_bearing=False, weekend_restricted=True),
    LeaveType.LOA: LeavePolicy(credit_bearing=False, weekend_restricted=False),
    LeaveType.LDV: LeavePolicy(credit_bearing=False, weekend_restricted=True),
    LeaveType.UPTO: LeavePolicy(credit_bearing=False, weekend_restricted=True, conflict_checked=True),
    LeaveType.ML: LeavePolicy(credit_bearing=False, weekend_restricted=False),
}


def policy_for(leave_type: LeaveType) -> LeavePolicy:
    return LEAVE_POLICIES[leave_type]


def is_credit_bearing(leave_type: LeaveType) -> bool:
    return LEAVE_POLICIES[leave_type].credit_bearing


def is_conflict_checked(leave_type: LeaveType) -> bool:
    return LEAVE_POLICIES[leave_type].conflict_checked
