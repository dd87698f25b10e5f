"""
Employee, Attendance & Break models: core business domain.

One ``Attendance`` row per employee per calendar day. Breaks hang off the
day they belong to and are kept in insertion (= chronological) order.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (JSON, Boolean, Column, DateTime, Float, ForeignKey,
                        Integer, String, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int | None = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    employee_code: str = Column(String(32), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    position: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    monthly_salary: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    attendances = relationship(
        "Attendance",
        back_populates="employee",
        cascade="all, delete-orphan",
    )


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    status: str | None = Column(String(20), nullable=True, index=True)  # type: ignore[assignment]
    # CHECKED_IN | ON_BREAK | CHECKED_OUT | ON_LEAVE
    shift_start_time: str | None = Column(String(5), nullable=True)  # type: ignore[assignment]  # HH:MM

    # ── Clock in / out ───────────────────────────────────────────────
    clock_in_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    clock_in_lat: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    clock_in_long: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    clock_in_office_tag: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    clock_in_photo: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    clock_out_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    clock_out_lat: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    clock_out_long: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    clock_out_office_tag: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    clock_out_photo: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    # ── Cached computation (written back at clock-in / clock-out) ───
    net_work_minutes: int = Column(Integer, default=0)  # type: ignore[assignment]
    late_minutes: int = Column(Integer, default=0)  # type: ignore[assignment]
    late_deduction: float = Column(Float, default=0.0)  # type: ignore[assignment]
    early_exit_minutes: int = Column(Integer, default=0)  # type: ignore[assignment]
    early_exit_deduction: float = Column(Float, default=0.0)  # type: ignore[assignment]
    absent_deduction: float = Column(Float, default=0.0)  # type: ignore[assignment]
    overtime_minutes: int = Column(Integer, default=0)  # type: ignore[assignment]
    overtime_amount: float = Column(Float, default=0.0)  # type: ignore[assignment]
    total_deduction: float = Column(Float, default=0.0)  # type: ignore[assignment]
    deduction_breakdown: list | None = Column(JSON, nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="attendances", lazy="selectin")
    breaks = relationship(
        "Break",
        back_populates="attendance",
        cascade="all, delete-orphan",
        order_by="Break.id",
        lazy="selectin",
    )


class Break(Base):
    __tablename__ = "breaks"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    attendance_id: int = Column(Integer, ForeignKey("attendance.id"), nullable=False, index=True)  # type: ignore[assignment]
    break_start: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    break_end: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    break_duration: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]  # minutes
    reason: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True)  # type: ignore[assignment]

    attendance = relationship("Attendance", back_populates="breaks")
