from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import BankStatus, HREvent, PaymentStatus, PayrollRunStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import EmployeePayrollDetails, PayrollRun
from .repository import PayrollRunRepository, PayslipWriter

_RUN_COLUMNS = """
    run_id, payroll_period, entity, status, employees, exceptions, total_net_pay, payment_status,
    created_at, manager_id, manager_approved_at, finance_id, finance_approved_at, rejection_reason,
    unfreeze_reason
"""

_DETAIL_COLUMNS = """
    details_id, payroll_run_id, employee_id, base_salary, allowances, deductions, bonus, benefit,
    gross_salary, net_salary, net_pay, bank_status, exceptions, hr_event
"""

# Columns a phase transition may stamp alongside the status.
_TRANSITION_FIELDS = {
    "manager_id",
    "manager_approved_at",
    "finance_id",
    "finance_approved_at",
    "rejection_reason",
    "unfreeze_reason",
}


def _to_run(r: dict) -> PayrollRun:
    return PayrollRun(
        run_id=r["run_id"],
        payroll_period=r["payroll_period"],
        entity=r["entity"],
        status=PayrollRunStatus(r["status"]),
        employees=int(r.get("employees") or 0),
        exceptions=int(r.get("exceptions") or 0),
        total_net_pay=as_decimal(r.get("total_net_pay")),
        payment_status=PaymentStatus(r.get("payment_status") or PaymentStatus.PENDING.value),
        created_at=r.get("created_at"),
        manager_id=r.get("manager_id"),
        manager_approved_at=r.get("manager_approved_at"),
        finance_id=r.get("finance_id"),
        finance_approved_at=r.get("finance_approved_at"),
        rejection_reason=r.get("rejection_reason"),
        unfreeze_reason=r.get("unfreeze_reason"),
    )


def _to_details(r: dict) -> EmployeePayrollDetails:
    return EmployeePayrollDetails(
        details_id=int(r["details_id"]),
        payroll_run_id=r["payroll_run_id"],
        employee_id=int(r["employee_id"]),
        base_salary=as_decimal(r["base_salary"]),
        allowances=as_decimal(r["allowances"]),
        deductions=as_decimal(r["deductions"]),
        bonus=as_decimal(r["bonus"]),
        benefit=as_decimal(r["benefit"]),
        gross_salary=as_decimal(r["gross_salary"]),
        net_salary=as_decimal(r["net_salary"]),
        net_pay=as_decimal(r["net_pay"]),
        bank_status=BankStatus(r["bank_status"]),
        exceptions=r.get("exceptions") or "",
        hr_event=HREvent(r.get("hr_event") or HREvent.NORMAL.value),
    )


class MySQLPayrollRunRepository(PayrollRunRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_run(self, run: PayrollRun) -> PayrollRun:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payroll_runs(
                    run_id, payroll_period, entity, status, employees, exceptions, total_net_pay,
                    payment_status, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,COALESCE(%s, CURRENT_TIMESTAMP))
                """,
                (
                    run.run_id,
                    run.payroll_period,
                    run.entity,
                    run.status.value,
                    run.employees,
                    run.exceptions,
                    run.total_net_pay,
                    run.payment_status.value,
                    run.created_at,
                ),
            )
        return run

    def get_run(self, run_id: str) -> Optional[PayrollRun]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RUN_COLUMNS} FROM payroll_runs WHERE run_id=%s", (run_id,))
            r = fetchone(cur)
            return _to_run(r) if r else None

    def list_runs(self) -> Sequence[PayrollRun]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RUN_COLUMNS} FROM payroll_runs ORDER BY created_at DESC")
            return [_to_run(r) for r in fetchall(cur)]

    def save_totals(
        self,
        run_id: str,
        *,
        status: PayrollRunStatus,
        employees: int,
        exceptions: int,
        total_net_pay: Decimal,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE payroll_runs
                SET status=%s, employees=%s, exceptions=%s, total_net_pay=%s
                WHERE run_id=%s
                """,
                (status.value, int(employees), int(exceptions), total_net_pay, run_id),
            )

    def transition(
        self,
        run_id: str,
        *,
        from_statuses: Sequence[PayrollRunStatus],
        to_status: PayrollRunStatus,
        payment_status: Optional[PaymentStatus] = None,
        **fields,
    ) -> bool:
        unknown = set(fields) - _TRANSITION_FIELDS
        if unknown:
            raise ValueError(f"Unsupported payroll run fields: {sorted(unknown)}")

        sets = ["status=%s"]
        params: list[object] = [to_status.value]
        if payment_status is not None:
            sets.append("payment_status=%s")
            params.append(payment_status.value)
        for column, value in fields.items():
            sets.append(f"{column}=%s")
            params.append(value)

        placeholders = ",".join(["%s"] * len(from_statuses))
        params.append(run_id)
        params.extend(s.value for s in from_statuses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE payroll_runs
                SET {", ".join(sets)}
                WHERE run_id=%s AND status IN ({placeholders})
                """,
                tuple(params),
            )
            return cur.rowcount > 0

    def save_details(self, details: EmployeePayrollDetails) -> EmployeePayrollDetails:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_payroll_details(
                    payroll_run_id, employee_id, base_salary, allowances, deductions, bonus, benefit,
                    gross_salary, net_salary, net_pay, bank_status, exceptions, hr_event
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    details.payroll_run_id,
                    details.employee_id,
                    details.base_salary,
                    details.allowances,
                    details.deductions,
                    details.bonus,
                    details.benefit,
                    details.gross_salary,
                    details.net_salary,
                    details.net_pay,
                    details.bank_status.value,
                    details.exceptions,
                    details.hr_event.value,
                ),
            )
            details_id = int(cur.lastrowid)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_DETAIL_COLUMNS} FROM employee_payroll_details WHERE details_id=%s", (details_id,))
            return _to_details(fetchone(cur))

    def list_details(self, run_id: str, *, only_exceptions: bool = False) -> Sequence[EmployeePayrollDetails]:
        where = "payroll_run_id=%s"
        if only_exceptions:
            where += " AND exceptions <> ''"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DETAIL_COLUMNS} FROM employee_payroll_details WHERE {where} ORDER BY employee_id",
                (run_id,),
            )
            return [_to_details(r) for r in fetchall(cur)]

    def set_details_exceptions(self, run_id: str, employee_id: int, exceptions: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_payroll_details
                SET exceptions=%s
                WHERE payroll_run_id=%s AND employee_id=%s
                """,
                (exceptions, run_id, int(employee_id)),
            )
            return cur.rowcount > 0


class MySQLPayslipWriter(PayslipWriter):
    """Stores payslip figures; PDF rendering and delivery happen elsewhere."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_payslip(self, run: PayrollRun, details: EmployeePayrollDetails) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payslips(payroll_run_id, employee_id, gross_salary, deductions, net_pay, payment_status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    run.run_id,
                    details.employee_id,
                    details.gross_salary,
                    details.deductions,
                    details.net_pay,
                    run.payment_status.value,
                ),
            )
