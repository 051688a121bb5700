from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ConfigStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import (
    Allowance,
    InsuranceBracket,
    PayGrade,
    Penalty,
    Refund,
    SigningBonus,
    TaxRule,
    TerminationBenefit,
)
from .repository import CompensationRepository, PayrollConfigRepository

APPROVED = ConfigStatus.APPROVED.value


class MySQLPayrollConfigRepository(PayrollConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_pay_grade_by_name(self, name: str) -> Optional[PayGrade]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT grade_id, name, base_salary, gross_salary, status
                FROM pay_grades
                WHERE name=%s AND status=%s
                ORDER BY grade_id DESC
                LIMIT 1
                """,
                (name, APPROVED),
            )
            r = fetchone(cur)
            if not r:
                return None
            return PayGrade(
                grade_id=int(r["grade_id"]),
                name=r["name"],
                base_salary=as_decimal(r["base_salary"]),
                gross_salary=as_decimal(r["gross_salary"]),
                status=ConfigStatus(r["status"]),
            )

    def list_active_allowances(self) -> Sequence[Allowance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT allowance_id, name, amount, status FROM allowances WHERE status=%s ORDER BY allowance_id",
                (APPROVED,),
            )
            return [
                Allowance(
                    allowance_id=int(r["allowance_id"]),
                    name=r["name"],
                    amount=as_decimal(r["amount"]),
                    status=ConfigStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]

    def get_active_tax_rule(self) -> Optional[TaxRule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT rule_id, name, rate, status, approved_at
                FROM tax_rules
                WHERE status=%s
                ORDER BY approved_at DESC, rule_id DESC
                LIMIT 1
                """,
                (APPROVED,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return TaxRule(
                rule_id=int(r["rule_id"]),
                name=r["name"],
                rate=as_decimal(r["rate"]),
                status=ConfigStatus(r["status"]),
                approved_at=r.get("approved_at"),
            )

    def find_insurance_bracket(self, amount: Decimal) -> Optional[InsuranceBracket]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT bracket_id, name, min_salary, max_salary, employee_rate, employer_rate, status, approved_at
                FROM insurance_brackets
                WHERE status=%s AND min_salary <= %s AND max_salary >= %s
                ORDER BY approved_at DESC, bracket_id DESC
                LIMIT 1
                """,
                (APPROVED, amount, amount),
            )
            r = fetchone(cur)
            if not r:
                return None
            return InsuranceBracket(
                bracket_id=int(r["bracket_id"]),
                name=r["name"],
                min_salary=as_decimal(r["min_salary"]),
                max_salary=as_decimal(r["max_salary"]),
                employee_rate=as_decimal(r["employee_rate"]),
                employer_rate=as_decimal(r["employer_rate"]),
                status=ConfigStatus(r["status"]),
                approved_at=r.get("approved_at"),
            )


class MySQLCompensationRepository(CompensationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_signing_bonuses(
        self, employee_id: int, *, created_from: datetime, created_to: datetime
    ) -> Sequence[SigningBonus]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT bonus_id, employee_id, amount, status, created_at
                FROM signing_bonuses
                WHERE employee_id=%s AND status=%s AND created_at >= %s AND created_at < %s
                """,
                (int(employee_id), APPROVED, created_from, created_to),
            )
            return [
                SigningBonus(
                    bonus_id=int(r["bonus_id"]),
                    employee_id=int(r["employee_id"]),
                    amount=as_decimal(r["amount"]),
                    status=ConfigStatus(r["status"]),
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]

    def list_termination_benefits(
        self, employee_id: int, *, created_from: datetime, created_to: datetime
    ) -> Sequence[TerminationBenefit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT benefit_id, employee_id, amount, kind, status, created_at
                FROM termination_benefits
                WHERE employee_id=%s AND status=%s AND created_at >= %s AND created_at < %s
                """,
                (int(employee_id), APPROVED, created_from, created_to),
            )
            return [
                TerminationBenefit(
                    benefit_id=int(r["benefit_id"]),
                    employee_id=int(r["employee_id"]),
                    amount=as_decimal(r["amount"]),
                    kind=r.get("kind") or "",
                    status=ConfigStatus(r["status"]),
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]

    def list_refunds(self, employee_id: int) -> Sequence[Refund]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT refund_id, employee_id, amount, description, status, created_at
                FROM refunds
                WHERE employee_id=%s AND status=%s
                """,
                (int(employee_id), APPROVED),
            )
            return [
                Refund(
                    refund_id=int(r["refund_id"]),
                    employee_id=int(r["employee_id"]),
                    amount=as_decimal(r["amount"]),
                    description=r.get("description") or "",
                    status=ConfigStatus(r["status"]),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def list_penalties(
        self, employee_id: int, *, created_from: datetime, created_to: datetime
    ) -> Sequence[Penalty]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT penalty_id, employee_id, reason, amount, status, created_at
                FROM employee_penalties
                WHERE employee_id=%s AND status=%s AND created_at >= %s AND created_at < %s
                """,
                (int(employee_id), APPROVED, created_from, created_to),
            )
            return [
                Penalty(
                    penalty_id=int(r["penalty_id"]),
                    employee_id=int(r["employee_id"]),
                    reason=r.get("reason") or "",
                    amount=as_decimal(r["amount"]),
                    status=ConfigStatus(r["status"]),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def add_penalty(self, penalty: Penalty) -> Penalty:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_penalties(employee_id, reason, amount, status, created_at)
                VALUES(%s,%s,%s,%s,COALESCE(%s, CURRENT_TIMESTAMP))
                """,
                (penalty.employee_id, penalty.reason, penalty.amount, penalty.status.value, penalty.created_at),
            )
            penalty_id = int(cur.lastrowid)
        return Penalty(
            penalty_id=penalty_id,
            employee_id=penalty.employee_id,
            reason=penalty.reason,
            amount=penalty.amount,
            status=penalty.status,
            created_at=penalty.created_at,
        )
