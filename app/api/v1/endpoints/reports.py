"""
Daily logs, deduction reports & monthly payroll.

Every endpoint fetches its attendance rows in **one** query, reads the
active payroll rules **once**, and aggregates in Python. Employee-level
roles only ever see their own rows; ``employee_info`` is attached for
privileged callers only.
"""

from __future__ import annotations

import calendar
import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_active_user, get_db, require_privileged
from app.core.config import settings
from app.core.timeutils import local_today
from app.models.employee import Attendance, Employee
from app.models.leave import Leave
from app.models.user import User
from app.schemas.attendance import (DailyLogRow, DailyLogsResponse,
                                    DailySummaryResponse,
                                    DeductionSummaryResponse, HealthResponse,
                                    LateReportResponse, MonthlyPayrollResponse)
from app.services.aggregation import (build_log_row, employee_info,
                                      late_report_rows, monthly_payroll_line,
                                      summarize_deductions, summarize_statuses)
from app.services.payroll_rules import get_active_rules

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
async def _scoped_employee_id(db: AsyncSession, user: User) -> int | None:
    """``None`` for privileged callers, else the caller's own employee id."""
    if user.is_privileged:
        return None
    result = await db.execute(select(Employee.id).where(Employee.user_id == user.id))
    employee_id = result.scalar_one_or_none()
    if employee_id is None:
        raise HTTPException(status_code=404, detail="No employee profile for this user")
    return employee_id


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def lookback_start(tz_offset: str, now: datetime | None = None) -> str:
    """First date key of the default daily-log window on the local clock."""
    today = date.fromisoformat(local_today(tz_offset, now))
    return (today - timedelta(days=settings.DAILY_LOG_LOOKBACK_DAYS)).isoformat()


def _shape_row(record: Attendance, row: dict, user: User) -> dict:
    if user.is_privileged:
        row["employee_info"] = employee_info(record.employee)
    return row


# ── Daily logs ──────────────────────────────────────────────────────
@router.get("/daily-logs", response_model=DailyLogsResponse)
async def list_daily_logs(
    date_str: str | None = Query(default=None, alias="date"),
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_LIMIT, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DailyLogsResponse:
    """Paginated daily attendance rows, newest first.

    Without ``date`` the window is the last ``DAILY_LOG_LOOKBACK_DAYS`` days.
    """
    rules = await get_active_rules(db)
    conditions = []
    scoped_id = await _scoped_employee_id(db, user)
    if scoped_id is not None:
        conditions.append(Attendance.employee_id == scoped_id)
    if date_str:
        conditions.append(Attendance.date == date_str)
    else:
        conditions.append(Attendance.date >= lookback_start(rules.timezone_offset))
    if status and status != "all":
        conditions.append(Attendance.status == status)

    total = (
        await db.execute(select(func.count(Attendance.id)).where(*conditions))
    ).scalar() or 0
    result = await db.execute(
        select(Attendance)
        .where(*conditions)
        .order_by(Attendance.date.desc(), Attendance.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    records = list(result.scalars().all())

    logs = [_shape_row(rec, build_log_row(rec, rules), user) for rec in records]
    return DailyLogsResponse(logs=logs, pagination=_pagination(page, limit, total))


@router.get("/daily-logs/summary", response_model=DailySummaryResponse)
async def daily_summary(
    date_str: str | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DailySummaryResponse:
    """Status counts and late arrivals for one day (today by default)."""
    rules = await get_active_rules(db)
    target = date_str or local_today(rules.timezone_offset)

    stmt = select(Attendance).where(Attendance.date == target)
    scoped_id = await _scoped_employee_id(db, user)
    if scoped_id is not None:
        stmt = stmt.where(Attendance.employee_id == scoped_id)
    records = (await db.execute(stmt)).scalars().all()

    return DailySummaryResponse(date=target, **summarize_statuses(records, rules))


@router.get("/daily-logs/late-report", response_model=LateReportResponse)
async def late_report(
    date_str: str | None = Query(default=None, alias="date"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_privileged),
) -> LateReportResponse:
    """Late arrivals for one day, most-late first."""
    rules = await get_active_rules(db)
    target = date_str or local_today(rules.timezone_offset)

    result = await db.execute(
        select(Attendance).where(Attendance.date == target).order_by(Attendance.id)
    )
    rows = late_report_rows(result.scalars().all(), rules)
    start = (page - 1) * limit

    return LateReportResponse(
        date=target,
        late_employees=rows[start:start + limit],
        pagination=_pagination(page, limit, len(rows)),
    )


@router.get("/daily-logs/{log_id}", response_model=DailyLogRow)
async def get_daily_log(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DailyLogRow:
    result = await db.execute(select(Attendance).where(Attendance.id == log_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise HTTPException(status_code=404, detail="Attendance log not found")

    scoped_id = await _scoped_employee_id(db, user)
    if scoped_id is not None and record.employee_id != scoped_id:
        raise HTTPException(status_code=403, detail="You can only view your own attendance")

    rules = await get_active_rules(db)
    return _shape_row(record, build_log_row(record, rules), user)


# ── Deduction summary ───────────────────────────────────────────────
@router.get("/deductions/summary", response_model=DeductionSummaryResponse)
async def deduction_summary(
    date_str: str | None = Query(default=None, alias="date"),
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    employee_id: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> DeductionSummaryResponse:
    """Deduction totals per category over a day or a date range."""
    rules = await get_active_rules(db)
    if date_from or date_to:
        if not (date_from and date_to):
            raise HTTPException(status_code=400, detail="date_from and date_to are both required")
        if date_from > date_to:
            raise HTTPException(status_code=400, detail="date_from must not be after date_to")
        start, end = date_from, date_to
    else:
        start = end = date_str or local_today(rules.timezone_offset)

    stmt = (
        select(Attendance)
        .where(Attendance.date >= start, Attendance.date <= end)
        .order_by(Attendance.date, Attendance.employee_id)
    )
    scoped_id = await _scoped_employee_id(db, user)
    if scoped_id is not None:
        stmt = stmt.where(Attendance.employee_id == scoped_id)
    elif employee_id is not None:
        stmt = stmt.where(Attendance.employee_id == employee_id)

    records = (await db.execute(stmt)).scalars().all()
    logger.info("Deduction summary %s..%s over %d records", start, end, len(records))
    return DeductionSummaryResponse(
        date_from=start, date_to=end, **summarize_deductions(records, rules)
    )


# ── Monthly payroll ─────────────────────────────────────────────────
@router.get("/payroll/monthly", response_model=MonthlyPayrollResponse)
async def monthly_payroll(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(...),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_privileged),
) -> MonthlyPayrollResponse:
    """Base salary netted against the month's summed deductions, per employee."""
    if month < 1 or month > 12:
        raise HTTPException(status_code=400, detail="Month must be 1-12")

    _, days_in_month = calendar.monthrange(year, month)
    month_start = f"{year:04d}-{month:02d}-01"
    month_end = f"{year:04d}-{month:02d}-{days_in_month:02d}"

    emp_result = await db.execute(
        select(Employee).where(Employee.is_active.is_(True)).order_by(Employee.name)
    )
    employees = list(emp_result.scalars().all())

    att_result = await db.execute(
        select(Attendance)
        .where(Attendance.date >= month_start, Attendance.date <= month_end)
        .order_by(Attendance.employee_id, Attendance.date)
    )
    by_employee: dict[int, list[Attendance]] = defaultdict(list)
    for att in att_result.scalars().all():
        by_employee[att.employee_id].append(att)

    leave_result = await db.execute(
        select(Leave.employee_id, func.count(Leave.id))
        .where(
            Leave.date >= month_start,
            Leave.date <= month_end,
            Leave.status == "APPROVED",
        )
        .group_by(Leave.employee_id)
    )
    leaves = {emp_id: count for emp_id, count in leave_result.all()}

    rules = await get_active_rules(db)
    report = [
        monthly_payroll_line(
            emp, by_employee.get(emp.id, []), leaves.get(emp.id, 0), days_in_month, rules
        )
        for emp in employees
    ]

    return MonthlyPayrollResponse(
        year=year,
        month=month,
        month_name=calendar.month_name[month],
        payroll_report=report,
    )


# ── Health ──────────────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: DB connectivity only."""
    result = HealthResponse(db=False)
    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)
    return result
