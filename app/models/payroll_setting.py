"""
Payroll Setting model: versioned, admin-configurable deduction rules.

Rows are never deleted, only superseded. Exactly one row carries
``is_active = True``; the rules service flips every other row off in the
same transaction that activates a new one.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, Integer,
                        String)

from app.db.base import Base


class PayrollSetting(Base):
    __tablename__ = "payroll_settings"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]

    # ── Late arrival (tiered, flat per bracket) ─────────────────────
    late_grace_period_minutes: int = Column(Integer, nullable=False, default=30)  # type: ignore[assignment]
    late_after_30_minutes: float = Column(Float, nullable=False, default=100)  # type: ignore[assignment]
    late_after_1_hour: float = Column(Float, nullable=False, default=200)  # type: ignore[assignment]
    late_after_1_5_hours: float = Column(Float, nullable=False, default=250)  # type: ignore[assignment]

    # ── Overtime bonuses (tiered) ───────────────────────────────────
    overtime_after_1_hour: float = Column(Float, nullable=False, default=150)  # type: ignore[assignment]
    overtime_after_2_hours: float = Column(Float, nullable=False, default=250)  # type: ignore[assignment]
    overtime_after_3_hours: float = Column(Float, nullable=False, default=350)  # type: ignore[assignment]
    overtime_after_4_hours: float = Column(Float, nullable=False, default=450)  # type: ignore[assignment]

    # ── Early exit ──────────────────────────────────────────────────
    early_exit_grace_minutes: int = Column(Integer, nullable=False, default=15)  # type: ignore[assignment]
    early_exit_penalty_per_minute: float = Column(Float, nullable=False, default=15)  # type: ignore[assignment]

    # ── Absence ─────────────────────────────────────────────────────
    absent_full_day_penalty: float = Column(Float, nullable=False, default=1000)  # type: ignore[assignment]
    half_day_penalty: float = Column(Float, nullable=False, default=500)  # type: ignore[assignment]
    half_day_threshold_minutes: int = Column(Integer, nullable=False, default=240)  # type: ignore[assignment]

    # ── Shift & breaks ──────────────────────────────────────────────
    standard_shift_minutes: int = Column(Integer, nullable=False, default=480)  # type: ignore[assignment]
    default_shift_start: str = Column(String(5), nullable=False, default="09:00")  # type: ignore[assignment]
    timezone_offset: str = Column(String(6), nullable=False, default="+05:30")  # type: ignore[assignment]
    max_break_minutes: int = Column(Integer, nullable=False, default=60)  # type: ignore[assignment]
    excess_break_penalty_per_minute: float = Column(Float, nullable=False, default=10)  # type: ignore[assignment]

    # ── Status & metadata ───────────────────────────────────────────
    is_active: bool = Column(Boolean, nullable=False, default=True, index=True)  # type: ignore[assignment]
    effective_from: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    notes: str = Column(String(500), nullable=False, default="")  # type: ignore[assignment]
    created_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    updated_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
