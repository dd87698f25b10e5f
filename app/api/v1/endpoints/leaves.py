"""
Leave endpoints.

Approved leave blocks clock-in for that day and counts towards the
monthly payroll's ``leave_days``.
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_admin, require_privileged
from app.models.employee import Employee
from app.models.leave import Leave
from app.models.user import User
from app.schemas.attendance import LeaveCreate, LeaveRead

router = APIRouter(prefix="/leaves", tags=["leaves"])
logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@router.post("", response_model=LeaveRead, status_code=201)
async def record_leave(
    body: LeaveCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Leave:
    """Create or update the leave entry for one employee-day."""
    emp = await db.execute(select(Employee.id).where(Employee.id == body.employee_id))
    if emp.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    result = await db.execute(
        select(Leave).where(Leave.employee_id == body.employee_id, Leave.date == body.date)
    )
    leave = result.scalar_one_or_none()
    if leave is None:
        leave = Leave(employee_id=body.employee_id, date=body.date, created_by=admin.id)
        db.add(leave)
    leave.status = body.status
    leave.reason = body.reason

    await db.commit()
    await db.refresh(leave)
    logger.info("Leave %s for employee %d on %s", leave.status, leave.employee_id, leave.date)
    return leave


@router.get("", response_model=list[LeaveRead])
async def list_leaves(
    employee_id: int | None = None,
    month: str | None = Query(default=None, description="YYYY-MM"),
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_privileged),
) -> list[Leave]:
    query = select(Leave).order_by(Leave.date.desc(), Leave.employee_id)
    if employee_id is not None:
        query = query.where(Leave.employee_id == employee_id)
    if month:
        if not _MONTH_RE.match(month):
            raise HTTPException(status_code=400, detail="month must be YYYY-MM")
        query = query.where(Leave.date.like(f"{month}-%"))
    if status:
        query = query.where(Leave.status == status.upper())
    result = await db.execute(query)
    return list(result.scalars().all())
