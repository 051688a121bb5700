from __future__ import annotations

from enum import Enum


class PunchType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class PunchPolicy(str, Enum):
    """How worked minutes are derived from a day's punches."""

    MULTIPLE = "MULTIPLE"
    FIRST_LAST = "FIRST_LAST"
    ONLY_FIRST = "ONLY_FIRST"


class RoundingMode(str, Enum):
    NEAREST = "nearest"
    CEIL = "ceil"
    FLOOR = "floor"


class HolidayType(str, Enum):
    NATIONAL = "NATIONAL"
    ORGANIZATIONAL = "ORGANIZATIONAL"
    WEEKLY_REST = "WEEKLY_REST"


class AssignmentScope(str, Enum):
    """Target of a shift assignment, most specific first."""

    EMPLOYEE = "EMPLOYEE"
    POSITION = "POSITION"
    DEPARTMENT = "DEPARTMENT"


class CorrectionStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CorrectionType(str, Enum):
    ADD = "ADD"
    DEDUCT = "DEDUCT"


class ApprovalRole(str, Enum):
    INITIATOR = "INITIATOR"
    LINE_MANAGER = "LINE_MANAGER"
    HR_MANAGER = "HR_MANAGER"
    HR_ADMIN = "HR_ADMIN"


class Decision(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"


class ConfigStatus(str, Enum):
    """Approval status shared by payroll configuration entities."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PayrollRunStatus(str, Enum):
    DRAFT = "DRAFT"
    UNDER_REVIEW = "UNDER_REVIEW"
    PUBLISHED = "PUBLISHED"
    PENDING_FINANCE_APPROVAL = "PENDING_FINANCE_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FROZEN = "FROZEN"
    UNFROZEN = "UNFROZEN"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class BankStatus(str, Enum):
    VALID = "VALID"
    MISSING = "MISSING"


class HREvent(str, Enum):
    NORMAL = "NORMAL"
    NEW_HIRE = "NEW_HIRE"
    RESIGNED = "RESIGNED"
    TERMINATED = "TERMINATED"


class NotificationSeverity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ALERT = "Alert"
