from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.importer import CsvPunchImporter
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository, MySQLImportStateRepository
from .attendance.policies.factory import PunchPolicyFactory
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .core.constants import (
    DEFAULT_CUTOFF_ADVANCE_HOURS,
    DEFAULT_ESCALATION_HOURS,
    DEFAULT_MAX_CORRECTION_MINUTES,
)
from .core.enums import PunchPolicy
from .corrections.escalation import EscalationService
from .corrections.mysql_correction_repository import (
    MySQLCorrectionRepository,
    MySQLPermissionConfigRepository,
)
from .corrections.service import CorrectionWorkflowService
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .notifications.mysql_notification_repository import MySQLNotificationStore
from .notifications.service import NotificationService
from .payroll.mysql_config_repository import MySQLCompensationRepository, MySQLPayrollConfigRepository
from .payroll.mysql_run_repository import MySQLPayrollRunRepository, MySQLPayslipWriter
from .payroll.run_service import PayrollRunService
from .payroll.service import PayrollCalculationService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .shifts.validator import ShiftValidator


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    attendance_service: AttendanceService
    punch_importer: CsvPunchImporter
    correction_service: CorrectionWorkflowService
    escalation_service: EscalationService
    notification_service: NotificationService
    payroll_calculation_service: PayrollCalculationService
    payroll_run_service: PayrollRunService


def build_container(*, db_config: dict, engine: Optional[dict] = None) -> Container:
    engine = engine or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    employees_repo = MySQLEmployeeRepository(conn)
    shifts_repo = MySQLShiftRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    import_state_repo = MySQLImportStateRepository(conn)
    corrections_repo = MySQLCorrectionRepository(conn)
    permission_configs_repo = MySQLPermissionConfigRepository(conn)
    audit_repo = MySQLAuditRepository(conn)
    payroll_config_repo = MySQLPayrollConfigRepository(conn)
    compensation_repo = MySQLCompensationRepository(conn)
    payroll_runs_repo = MySQLPayrollRunRepository(conn)

    notification_service = NotificationService(MySQLNotificationStore(conn))
    attendance_service = AttendanceService(
        attendance_repo,
        employees_repo,
        ShiftValidator(shifts_repo),
        policy_factory=PunchPolicyFactory(),
        default_policy=PunchPolicy(engine.get("DEFAULT_PUNCH_POLICY", PunchPolicy.MULTIPLE.value)),
    )
    punch_importer = CsvPunchImporter(attendance_service, import_state_repo)
    correction_service = CorrectionWorkflowService(
        corrections_repo,
        attendance_repo,
        permission_configs_repo,
        audit_repo,
        default_max_minutes=int(engine.get("DEFAULT_MAX_CORRECTION_MINUTES", DEFAULT_MAX_CORRECTION_MINUTES)),
    )
    escalation_service = EscalationService(
        corrections_repo,
        notification_service,
        audit_repo,
        escalation_hours=int(engine.get("ESCALATION_HOURS", DEFAULT_ESCALATION_HOURS)),
        cutoff_advance_hours=int(engine.get("CUTOFF_ADVANCE_HOURS", DEFAULT_CUTOFF_ADVANCE_HOURS)),
    )
    payroll_calculation_service = PayrollCalculationService(
        employees_repo,
        payroll_config_repo,
        compensation_repo,
        attendance_service,
    )
    payroll_run_service = PayrollRunService(
        employees_repo,
        payroll_calculation_service,
        payroll_runs_repo,
        MySQLPayslipWriter(conn),
    )

    return Container(
        conn=conn,
        attendance_service=attendance_service,
        punch_importer=punch_importer,
        correction_service=correction_service,
        escalation_service=escalation_service,
        notification_service=notification_service,
        payroll_calculation_service=payroll_calculation_service,
        payroll_run_service=payroll_run_service,
    )
