"""
Clock-in / clock-out / break endpoints for the calling employee.

Each state change writes the calculator's output back onto the day's row,
so reports can serve cached figures without recomputing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_employee, get_db
from app.core.timeutils import (end_of_local_day, ensure_utc, local_today,
                                minutes_between)
from app.models.employee import Attendance, Break, Employee
from app.models.leave import Leave
from app.schemas.attendance import (BreakResponse, BreakStartRequest,
                                    ClockInResponse, ClockOutResponse,
                                    ClockRequest, LiveStatusResponse)
from app.schemas.payroll import DeductionResult
from app.services.aggregation import break_summary, evaluate
from app.services.payroll_rules import get_active_rules

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)

OPEN_STATUSES = ("CHECKED_IN", "ON_BREAK")


def _write_back(record: Attendance, result: DeductionResult) -> None:
    """Persist a full calculator result onto the row's cached fields."""
    record.net_work_minutes = result.net_work_minutes
    record.late_minutes = result.late_minutes
    record.late_deduction = result.late_deduction
    record.early_exit_minutes = result.early_exit_minutes
    record.early_exit_deduction = result.early_exit_deduction
    record.absent_deduction = result.absent_deduction
    record.overtime_minutes = result.overtime_minutes
    record.overtime_amount = result.overtime_amount
    record.total_deduction = result.total_deduction
    record.deduction_breakdown = [e.model_dump() for e in result.deduction_breakdown]


def _reset_cached(record: Attendance) -> None:
    _write_back(record, DeductionResult())
    record.deduction_breakdown = None


async def _today_record(
    db: AsyncSession, employee_id: int, today: str, lock: bool = False
) -> Attendance | None:
    stmt = select(Attendance).where(
        Attendance.employee_id == employee_id, Attendance.date == today
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


# ── Clock in ────────────────────────────────────────────────────────
@router.post("/clock-in", response_model=ClockInResponse, status_code=201)
async def clock_in(
    body: ClockRequest,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> ClockInResponse:
    """Start today's session.

    Sessions left open on earlier days are closed at 23:59:59 local time of
    their own date before the new one starts.
    """
    rules = await get_active_rules(db)
    today = local_today(rules.timezone_offset)
    now = datetime.now(timezone.utc)

    stale_result = await db.execute(
        select(Attendance).where(
            Attendance.employee_id == employee.id,
            Attendance.date < today,
            Attendance.status.in_(OPEN_STATUSES),
        )
    )
    stale_sessions = list(stale_result.scalars().all())
    for old in stale_sessions:
        old.clock_out_time = end_of_local_day(old.date, rules.timezone_offset)
        old.clock_out_lat = old.clock_in_lat
        old.clock_out_long = old.clock_in_long
        old.clock_out_office_tag = old.clock_in_office_tag
        old.status = "CHECKED_OUT"
        _write_back(old, evaluate(old, rules))
        logger.info("Auto-closed session %s for employee %d", old.date, employee.id)

    leave_result = await db.execute(
        select(Leave).where(
            Leave.employee_id == employee.id,
            Leave.date == today,
            Leave.status == "APPROVED",
        )
    )
    if leave_result.scalar_one_or_none() is not None:
        await db.commit()
        raise HTTPException(status_code=400, detail="You are on approved leave today")

    record = await _today_record(db, employee.id, today, lock=True)
    if record is not None and record.status in OPEN_STATUSES:
        await db.commit()
        raise HTTPException(status_code=400, detail="Already clocked in")

    if record is None:
        record = Attendance(employee_id=employee.id, date=today)
        db.add(record)

    record.clock_in_time = now
    record.clock_in_lat = body.latitude
    record.clock_in_long = body.longitude
    record.clock_in_office_tag = body.office_tag or "Unknown Location"
    record.clock_in_photo = body.photo_reference
    record.clock_out_time = None
    record.clock_out_lat = record.clock_out_long = None
    record.clock_out_office_tag = record.clock_out_photo = None
    record.status = "CHECKED_IN"
    record.shift_start_time = rules.default_shift_start
    _reset_cached(record)

    result = evaluate(record, rules)
    record.late_minutes = result.late_minutes
    record.late_deduction = result.late_deduction

    await db.commit()
    logger.info("Clock-in for employee %d on %s (late %d min)", employee.id, today, result.late_minutes)

    return ClockInResponse(
        message="Clock-in successful",
        attendance_id=record.id,
        date=today,
        status=record.status,
        clock_in_time=now.isoformat(),
        late_flag=result.late_minutes > 0,
        late_minutes=result.late_minutes,
        late_status=f"Late by {result.late_minutes} minutes" if result.late_minutes else "On time",
        auto_closed_sessions=len(stale_sessions),
    )


# ── Clock out ───────────────────────────────────────────────────────
@router.post("/clock-out", response_model=ClockOutResponse)
async def clock_out(
    body: ClockRequest,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> ClockOutResponse:
    """Close today's session and persist the computed deductions."""
    rules = await get_active_rules(db)
    today = local_today(rules.timezone_offset)

    record = await _today_record(db, employee.id, today, lock=True)
    if record is None or record.status not in OPEN_STATUSES:
        raise HTTPException(status_code=400, detail="You must be checked in before clocking out")
    if record.clock_in_time is None:
        raise HTTPException(status_code=400, detail="Clock-in time is missing. Please clock in again.")
    if any(b.is_active for b in record.breaks):
        raise HTTPException(status_code=400, detail="Please end break before clocking out")

    now = datetime.now(timezone.utc)
    clock_in_time = ensure_utc(record.clock_in_time)
    if now < clock_in_time:
        raise HTTPException(status_code=400, detail="Clock-out time cannot be before clock-in time")

    record.clock_out_time = now
    record.clock_out_lat = body.latitude
    record.clock_out_long = body.longitude
    record.clock_out_office_tag = body.office_tag or record.clock_in_office_tag or "Unknown Location"
    record.clock_out_photo = body.photo_reference
    record.status = "CHECKED_OUT"

    result = evaluate(record, rules)
    _write_back(record, result)
    await db.commit()
    logger.info(
        "Clock-out for employee %d on %s (net %d min, deduction %s)",
        employee.id, today, result.net_work_minutes, result.total_deduction,
    )

    return ClockOutResponse(
        message="Clock-out successful",
        attendance_id=record.id,
        status=record.status,
        clock_in_time=clock_in_time.isoformat(),
        clock_out_time=now.isoformat(),
        net_work_minutes=result.net_work_minutes,
        net_work_hours=round(result.net_work_minutes / 60, 2),
        overtime_minutes=result.overtime_minutes,
        overtime_amount=result.overtime_amount,
        total_deduction=result.total_deduction,
        break_summary=break_summary(record),
    )


# ── Breaks ──────────────────────────────────────────────────────────
@router.post("/break/start", response_model=BreakResponse)
async def break_start(
    body: BreakStartRequest,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> BreakResponse:
    rules = await get_active_rules(db)
    record = await _today_record(db, employee.id, local_today(rules.timezone_offset), lock=True)
    if record is None:
        raise HTTPException(status_code=400, detail="No attendance record found. Please clock in first.")
    if record.status != "CHECKED_IN":
        raise HTTPException(
            status_code=400,
            detail=f"Cannot start break. Current status: {record.status}. You must be checked in.",
        )
    if any(b.is_active for b in record.breaks):
        raise HTTPException(status_code=400, detail="Break already active")

    record.breaks.append(
        Break(
            break_start=datetime.now(timezone.utc),
            break_duration=0,
            reason=body.reason or "General Break",
            is_active=True,
        )
    )
    record.status = "ON_BREAK"
    await db.commit()
    logger.info("Break started for employee %d", employee.id)

    return BreakResponse(
        message="Break started",
        status=record.status,
        clock_in_time=record.clock_in_time.isoformat() if record.clock_in_time else None,
        total_break_minutes=break_summary(record)["total_break_minutes"],
    )


@router.post("/break/end", response_model=BreakResponse)
async def break_end(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> BreakResponse:
    rules = await get_active_rules(db)
    record = await _today_record(db, employee.id, local_today(rules.timezone_offset), lock=True)
    if record is None:
        raise HTTPException(status_code=400, detail="No attendance record found")
    if record.status != "ON_BREAK":
        raise HTTPException(
            status_code=400,
            detail=f"Cannot end break. Current status: {record.status}. No active break to end.",
        )

    active = next((b for b in record.breaks if b.is_active), None)
    if active is None:
        record.status = "CHECKED_IN"
        await db.commit()
        logger.warning("Employee %d was ON_BREAK without an open break; status corrected", employee.id)
        raise HTTPException(status_code=400, detail="No active break found. Status corrected to CHECKED_IN.")

    now = datetime.now(timezone.utc)
    active.break_end = now
    active.break_duration = max(0, minutes_between(ensure_utc(active.break_start), now))
    active.is_active = False
    record.status = "CHECKED_IN"
    await db.commit()
    logger.info("Break ended for employee %d (%d min)", employee.id, active.break_duration)

    return BreakResponse(
        message="Break ended",
        status=record.status,
        clock_in_time=record.clock_in_time.isoformat() if record.clock_in_time else None,
        total_break_minutes=break_summary(record)["total_break_minutes"],
    )


# ── Live status ─────────────────────────────────────────────────────
@router.get("/live", response_model=LiveStatusResponse)
async def live_status(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> LiveStatusResponse:
    """Today's status for the caller, including any break in progress.

    An approved leave for today reports ``ON_LEAVE`` regardless of any row.
    """
    rules = await get_active_rules(db)
    today = local_today(rules.timezone_offset)

    leave_result = await db.execute(
        select(Leave).where(
            Leave.employee_id == employee.id,
            Leave.date == today,
            Leave.status == "APPROVED",
        )
    )
    if leave_result.scalar_one_or_none() is not None:
        return LiveStatusResponse(status="ON_LEAVE")

    record = await _today_record(db, employee.id, today)
    if record is None:
        return LiveStatusResponse()

    now = datetime.now(timezone.utc)
    active = next((b for b in record.breaks if b.is_active), None)
    current = 0
    if active is not None:
        current = max(0, minutes_between(ensure_utc(active.break_start), now))
    total_break = break_summary(record)["total_break_minutes"]

    running = 0
    if record.clock_in_time is not None:
        end = ensure_utc(record.clock_out_time) if record.clock_out_time else now
        elapsed = minutes_between(ensure_utc(record.clock_in_time), end)
        running = max(0, elapsed - total_break - current)

    return LiveStatusResponse(
        status=record.status,
        clock_in_time=record.clock_in_time.isoformat() if record.clock_in_time else None,
        clock_out_time=record.clock_out_time.isoformat() if record.clock_out_time else None,
        total_break_minutes=total_break,
        current_break_minutes=current,
        running_work_minutes=running,
    )
