"""
Employee CRUD endpoints.

- GET operations require a manager or admin.
- POST / PUT / DELETE operations require admin role.
- GET /employees/me is open to any linked employee.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_employee, get_db, require_admin,
                             require_privileged)
from app.models.employee import Employee
from app.models.user import User
from app.schemas.attendance import (DeleteResponse, EmployeeCreate,
                                    EmployeeRead, EmployeeUpdate)

router = APIRouter(tags=["employees"])
logger = logging.getLogger(__name__)


async def _get_or_404(db: AsyncSession, employee_id: int) -> Employee:
    result = await db.execute(select(Employee).where(Employee.id == employee_id))
    emp = result.scalar_one_or_none()
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


async def _ensure_user_free(db: AsyncSession, user_id: int, employee_id: int | None = None) -> None:
    """One employee profile per user account."""
    result = await db.execute(select(Employee).where(Employee.user_id == user_id))
    linked = result.scalar_one_or_none()
    if linked is not None and linked.id != employee_id:
        raise HTTPException(
            status_code=400,
            detail=f"User {user_id} is already linked to employee '{linked.employee_code}'",
        )


@router.get("/employees", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    search: str | None = None,
    department: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_privileged),
) -> list[Employee]:
    query = (
        select(Employee)
        .where(Employee.is_active.is_(True))
        .order_by(Employee.name)
        .offset(skip)
        .limit(limit)
    )
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        query = query.where(Employee.name.ilike(f"%{safe_search}%", escape="\\"))
    if department:
        query = query.where(Employee.department == department)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/employees/me", response_model=EmployeeRead)
async def get_my_profile(employee: Employee = Depends(get_current_employee)) -> Employee:
    return employee


@router.post("/employees", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Employee:
    existing = await db.execute(
        select(Employee).where(Employee.employee_code == body.employee_code)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=400,
            detail=f"Employee code '{body.employee_code}' already registered",
        )
    if body.user_id is not None:
        await _ensure_user_free(db, body.user_id)

    employee = Employee(**body.model_dump())
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("Created employee %s (%s)", employee.name, employee.employee_code)
    return employee


@router.get("/employees/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_privileged),
) -> Employee:
    emp = await _get_or_404(db, employee_id)
    if not emp.is_active:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


@router.put("/employees/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Employee:
    emp = await _get_or_404(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("user_id") is not None:
        await _ensure_user_free(db, changes["user_id"], emp.id)

    for field, value in changes.items():
        setattr(emp, field, value)

    await db.commit()
    await db.refresh(emp)
    logger.info("Updated employee %d", employee_id)
    return emp


@router.delete("/employees/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    """Soft-delete (deactivate) an employee. Attendance history is preserved."""
    emp = await _get_or_404(db, employee_id)
    emp.is_active = False
    await db.commit()
    logger.info("Soft-deleted employee %d (%s)", employee_id, emp.name)
    return DeleteResponse(success=True, message=f"Employee '{emp.name}' deactivated")
