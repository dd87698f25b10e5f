"""
Aggregation over many attendance days.

Every function here takes ORM ``Attendance`` rows (breaks and employee
already loaded) plus the rule set fetched once for the whole batch, runs
the calculator per row and folds the results. Rows are evaluated
independently; a row that fails to evaluate contributes zeros.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.models.employee import Attendance, Employee
from app.schemas.payroll import AttendanceDay, DeductionResult, PayrollRules
from app.services.deduction import compute_deduction

logger = logging.getLogger(__name__)

_STATUSES = ("CHECKED_IN", "ON_BREAK", "CHECKED_OUT", "ON_LEAVE")


def resolve(stored: Any, computed: Any) -> Any:
    """Cache-then-compute: the persisted value wins unless it is empty or zero."""
    return stored if stored else computed


def evaluate(record: Attendance, rules: PayrollRules | None) -> DeductionResult:
    """Run the calculator on one ORM row; malformed rows degrade to zeros."""
    try:
        day = AttendanceDay.from_record(record)
    except Exception:
        logger.exception("Attendance %s could not be read, using zero deductions", record.id)
        return DeductionResult()
    return compute_deduction(day, day.breaks, rules)


def evaluate_records(
    records: Iterable[Attendance], rules: PayrollRules | None
) -> Iterator[tuple[Attendance, DeductionResult]]:
    """Lazily pair each record with its result so callers can stream or chunk."""
    for record in records:
        yield record, evaluate(record, rules)


def _hours(minutes: int | float) -> float:
    return round((minutes or 0) / 60, 2)


def round_half_up(amount: float) -> int:
    """Whole-unit rounding with ties away from zero (2.5 -> 3)."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _iso(dt) -> str | None:
    return dt.isoformat() if dt is not None else None


def break_summary(record: Attendance) -> dict:
    total = sum(b.break_duration or 0 for b in record.breaks or [])
    return {
        "total_breaks": len(record.breaks or []),
        "total_break_minutes": total,
        "total_break_hours": _hours(total),
    }


def employee_info(employee: Employee | None) -> dict | None:
    if employee is None:
        return None
    return {
        "id": employee.id,
        "name": employee.name,
        "email": employee.email,
        "employee_code": employee.employee_code,
        "department": employee.department,
    }


def _location(record: Attendance) -> dict | None:
    for prefix in ("clock_in", "clock_out"):
        lat = getattr(record, f"{prefix}_lat")
        long = getattr(record, f"{prefix}_long")
        if lat is not None or long is not None:
            return {
                "lat": lat,
                "long": long,
                "office_tag": getattr(record, f"{prefix}_office_tag"),
            }
    return None


# ── 1. Per-record enrichment row ────────────────────────────────────
def build_log_row(
    record: Attendance,
    rules: PayrollRules | None,
    computed: DeductionResult | None = None,
) -> dict:
    """Display row for one day, each cached field resolved independently."""
    if computed is None:
        computed = evaluate(record, rules)
    defaults = rules or PayrollRules()

    net_work = resolve(record.net_work_minutes, computed.net_work_minutes)
    overtime = resolve(record.overtime_minutes, computed.overtime_minutes)
    late_minutes = resolve(record.late_minutes, computed.late_minutes)
    early_minutes = resolve(record.early_exit_minutes, computed.early_exit_minutes)

    return {
        "id": record.id,
        "employee_id": record.employee_id,
        "date": record.date,
        "status": record.status,
        "clock_in_time": _iso(record.clock_in_time),
        "clock_out_time": _iso(record.clock_out_time),
        "shift_start_time": record.shift_start_time or defaults.default_shift_start,
        "grace_period_minutes": defaults.late_grace_period_minutes,
        "net_work_minutes": net_work,
        "net_work_hours": _hours(net_work),
        "overtime_minutes": overtime,
        "overtime_hours": _hours(overtime),
        "overtime_amount": resolve(record.overtime_amount, computed.overtime_amount),
        "late_flag": late_minutes > 0,
        "late_minutes": late_minutes,
        "late_deduction": resolve(record.late_deduction, computed.late_deduction),
        "early_exit_flag": early_minutes > 0,
        "early_exit_minutes": early_minutes,
        "early_exit_deduction": resolve(record.early_exit_deduction, computed.early_exit_deduction),
        "excess_break_minutes": computed.excess_break_minutes,
        "break_penalty": computed.excess_break_deduction,
        "absent_deduction": resolve(record.absent_deduction, computed.absent_deduction),
        "total_deduction": resolve(record.total_deduction, computed.total_deduction),
        "deduction_breakdown": resolve(
            record.deduction_breakdown,
            [entry.model_dump() for entry in computed.deduction_breakdown],
        ),
        "break_summary": break_summary(record),
        "location": _location(record),
        "photo_reference": record.clock_in_photo or record.clock_out_photo,
    }


# ── 2. Status summary ───────────────────────────────────────────────
def summarize_statuses(records: Iterable[Attendance], rules: PayrollRules | None) -> dict:
    counts = dict.fromkeys(_STATUSES, 0)
    total = 0
    late = 0
    for record, result in evaluate_records(records, rules):
        total += 1
        if record.status in counts:
            counts[record.status] += 1
        if result.late_minutes > 0:
            late += 1

    present = counts["CHECKED_IN"] + counts["ON_BREAK"] + counts["CHECKED_OUT"]
    return {
        "total_records": total,
        "present": present,
        "checked_in": counts["CHECKED_IN"],
        "on_break": counts["ON_BREAK"],
        "checked_out": counts["CHECKED_OUT"],
        "on_leave": counts["ON_LEAVE"],
        "late_employees": late,
        "not_clocked_in": max(0, total - present - counts["ON_LEAVE"]),
    }


# ── 3. Monetary rollups ─────────────────────────────────────────────
def empty_deduction_totals() -> dict:
    return {
        "total_records": 0,
        "unique_employees": 0,
        "late_count": 0,
        "early_exit_count": 0,
        "absent_count": 0,
        "overtime_count": 0,
        "break_penalty_count": 0,
        "grand_total_deductions": 0,
        "total_late_deductions": 0,
        "total_early_exit_deductions": 0,
        "total_absent_deductions": 0,
        "total_break_penalties": 0,
        "total_overtime_bonuses": 0,
    }


def deduction_report_row(record: Attendance, result: DeductionResult) -> dict:
    return {
        "attendance_id": record.id,
        "date": record.date,
        "employee_id": record.employee_id,
        "employee_info": employee_info(record.employee),
        "late_minutes": result.late_minutes,
        "late_deduction": result.late_deduction,
        "early_exit_minutes": result.early_exit_minutes,
        "early_exit_deduction": result.early_exit_deduction,
        "excess_break_minutes": result.excess_break_minutes,
        "break_penalty": result.excess_break_deduction,
        "absent_deduction": result.absent_deduction,
        "overtime_minutes": result.overtime_minutes,
        "overtime_bonus": result.overtime_amount,
        "total_deduction": result.total_deduction,
        "net_work_hours": _hours(result.net_work_minutes),
        "clock_in_time": _iso(record.clock_in_time),
        "clock_out_time": _iso(record.clock_out_time),
    }


def summarize_deductions(records: Iterable[Attendance], rules: PayrollRules | None) -> dict:
    """Totals per deduction category plus one report row per record."""
    rows = [deduction_report_row(rec, res) for rec, res in evaluate_records(records, rules)]
    totals = empty_deduction_totals()
    if not rows:
        return {"summary": totals, "deduction_reports": []}

    totals.update(
        total_records=len(rows),
        unique_employees=len({r["employee_id"] for r in rows}),
        late_count=sum(1 for r in rows if r["late_minutes"] > 0),
        early_exit_count=sum(1 for r in rows if r["early_exit_minutes"] > 0),
        absent_count=sum(1 for r in rows if r["absent_deduction"] > 0),
        overtime_count=sum(1 for r in rows if r["overtime_minutes"] > 0),
        break_penalty_count=sum(1 for r in rows if r["break_penalty"] > 0),
        grand_total_deductions=round_half_up(sum(r["total_deduction"] for r in rows)),
        total_late_deductions=round_half_up(sum(r["late_deduction"] for r in rows)),
        total_early_exit_deductions=round_half_up(sum(r["early_exit_deduction"] for r in rows)),
        total_absent_deductions=round_half_up(sum(r["absent_deduction"] for r in rows)),
        total_break_penalties=round_half_up(sum(r["break_penalty"] for r in rows)),
        total_overtime_bonuses=round_half_up(sum(r["overtime_bonus"] for r in rows)),
    )
    return {"summary": totals, "deduction_reports": rows}


def monthly_payroll_line(
    employee: Employee,
    records: Iterable[Attendance],
    leave_days: int,
    days_in_month: int,
    rules: PayrollRules | None,
) -> dict:
    """One employee's month: summed deductions netted against base salary.

    ``absent_days`` is left unclamped so inconsistent data stays visible.
    The overtime bonus is reported alongside and never offsets deductions.
    """
    working_days = 0
    total_deduction: float = 0
    total_overtime: float = 0
    late_count = early_count = absent_count = 0
    late_minutes = early_minutes = 0

    for _record, result in evaluate_records(records, rules):
        working_days += 1
        total_deduction += result.total_deduction
        total_overtime += result.overtime_amount
        if result.late_minutes > 0:
            late_count += 1
            late_minutes += result.late_minutes
        if result.early_exit_minutes > 0:
            early_count += 1
            early_minutes += result.early_exit_minutes
        if result.absent_deduction > 0:
            absent_count += 1

    salary = employee.monthly_salary or 0
    return {
        "employee_info": employee_info(employee),
        "monthly_salary": salary,
        "working_days": working_days,
        "leave_days": leave_days,
        "absent_days": days_in_month - working_days - leave_days,
        "deduction_summary": {
            "late_count": late_count,
            "total_late_minutes": late_minutes,
            "early_exit_count": early_count,
            "total_early_exit_minutes": early_minutes,
            "absent_count": absent_count,
            "total_deduction": total_deduction,
        },
        "overtime_bonus": total_overtime,
        "net_salary": salary - total_deduction,
    }


def late_report_rows(records: Iterable[Attendance], rules: PayrollRules | None) -> list[dict]:
    """Late arrivals only, most-late first."""
    defaults = rules or PayrollRules()
    rows = [
        {
            "attendance_id": record.id,
            "employee_info": employee_info(record.employee),
            "clock_in_time": _iso(record.clock_in_time),
            "shift_start_time": record.shift_start_time or defaults.default_shift_start,
            "grace_period_minutes": defaults.late_grace_period_minutes,
            "late_minutes": result.late_minutes,
            "deduction": result.late_deduction,
        }
        for record, result in evaluate_records(records, rules)
        if result.late_minutes > 0
    ]
    rows.sort(key=lambda r: r["late_minutes"], reverse=True)
    return rows
