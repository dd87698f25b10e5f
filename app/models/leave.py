"""
Leave model: one row per employee per requested day off.

Only APPROVED rows count towards payroll leave days and block clock-in.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Column, DateTime, ForeignKey, Index, Integer, String,
                        UniqueConstraint)

from app.db.base import Base


class Leave(Base):
    __tablename__ = "leaves"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_leave_emp_date"),
        Index("ix_leave_employee_date", "employee_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD
    status: str = Column(String(20), nullable=False, default="PENDING")  # type: ignore[assignment]
    # APPROVED | PENDING | REJECTED
    reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
