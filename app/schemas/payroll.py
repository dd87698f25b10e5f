"""
Data contracts of the deduction engine.

The calculator only ever sees these models; ORM rows are converted at the
edge (``AttendanceDay.from_record``, ``PayrollRules.model_validate``).
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

from app.core.timeutils import ensure_utc

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_OFFSET_RE = re.compile(r"^[+-]\d{2}(:\d{2})?$")

AttendanceStatus = Literal["CHECKED_IN", "ON_BREAK", "CHECKED_OUT", "ON_LEAVE"]


# ── Attendance facts ────────────────────────────────────────────────
class Location(BaseModel):
    lat: float | None = None
    long: float | None = None
    office_tag: str | None = None


class ClockEvent(BaseModel):
    time: datetime
    location: Location | None = None
    photo_reference: str | None = None

    @field_validator("time")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)  # type: ignore[return-value]


class BreakEntry(BaseModel):
    break_start: datetime
    break_end: datetime | None = None
    break_duration: int = 0  # minutes, 0 while open
    reason: str | None = None
    is_active: bool = False

    model_config = {"from_attributes": True}

    @field_validator("break_start", "break_end")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)


class AttendanceDay(BaseModel):
    """One employee's attendance for one calendar day."""

    date: str
    clock_in: ClockEvent | None = None
    clock_out: ClockEvent | None = None
    breaks: list[BreakEntry] = Field(default_factory=list)
    shift_start_time: str | None = None
    status: AttendanceStatus | None = None

    @classmethod
    def from_record(cls, record) -> "AttendanceDay":
        """Build the contract from an ``Attendance`` ORM row."""

        def _clock(prefix: str) -> ClockEvent | None:
            ts = getattr(record, f"{prefix}_time")
            if ts is None:
                return None
            return ClockEvent(
                time=ts,
                location=Location(
                    lat=getattr(record, f"{prefix}_lat"),
                    long=getattr(record, f"{prefix}_long"),
                    office_tag=getattr(record, f"{prefix}_office_tag"),
                ),
                photo_reference=getattr(record, f"{prefix}_photo"),
            )

        return cls(
            date=record.date,
            clock_in=_clock("clock_in"),
            clock_out=_clock("clock_out"),
            breaks=[BreakEntry.model_validate(b) for b in (record.breaks or [])],
            shift_start_time=record.shift_start_time,
            status=record.status,
        )


# ── Rule configuration ──────────────────────────────────────────────
class PayrollRules(BaseModel):
    """The active rule set. Defaults mirror a freshly seeded configuration."""

    late_grace_period_minutes: int = Field(default=30, ge=0)
    late_after_30_minutes: float = Field(default=100, ge=0)
    late_after_1_hour: float = Field(default=200, ge=0)
    late_after_1_5_hours: float = Field(default=250, ge=0)

    overtime_after_1_hour: float = Field(default=150, ge=0)
    overtime_after_2_hours: float = Field(default=250, ge=0)
    overtime_after_3_hours: float = Field(default=350, ge=0)
    overtime_after_4_hours: float = Field(default=450, ge=0)

    early_exit_grace_minutes: int = Field(default=15, ge=0)
    early_exit_penalty_per_minute: float = Field(default=15, ge=0)

    absent_full_day_penalty: float = Field(default=1000, ge=0)
    half_day_penalty: float = Field(default=500, ge=0)
    half_day_threshold_minutes: int = Field(default=240, ge=0)

    standard_shift_minutes: int = Field(default=480, ge=0)
    default_shift_start: str = "09:00"
    timezone_offset: str = "+05:30"

    max_break_minutes: int = Field(default=60, ge=0)
    excess_break_penalty_per_minute: float = Field(default=10, ge=0)

    model_config = {"from_attributes": True}

    @field_validator("default_shift_start")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        if not _HHMM_RE.match(v):
            raise ValueError("default_shift_start must be HH:MM")
        return v

    @field_validator("timezone_offset")
    @classmethod
    def _offset(cls, v: str) -> str:
        if not _OFFSET_RE.match(v):
            raise ValueError("timezone_offset must look like +05:30")
        return v

    def late_tiers(self) -> list[tuple[int, float]]:
        """(minutes past grace, penalty), highest bracket first."""
        return [
            (90, self.late_after_1_5_hours),
            (60, self.late_after_1_hour),
            (1, self.late_after_30_minutes),
        ]

    def overtime_tiers(self) -> list[tuple[int, float]]:
        """(overtime minutes, bonus), highest bracket first."""
        return [
            (240, self.overtime_after_4_hours),
            (180, self.overtime_after_3_hours),
            (120, self.overtime_after_2_hours),
            (60, self.overtime_after_1_hour),
        ]


# ── Deduction result ────────────────────────────────────────────────
class LateEntry(BaseModel):
    type: Literal["LATE"] = "LATE"
    minutes: int
    amount: float
    description: str


class EarlyExitEntry(BaseModel):
    type: Literal["EARLY_EXIT"] = "EARLY_EXIT"
    minutes: int
    amount: float
    description: str


class ExcessBreakEntry(BaseModel):
    type: Literal["EXCESS_BREAK"] = "EXCESS_BREAK"
    minutes: int
    amount: float
    description: str


class AbsentEntry(BaseModel):
    type: Literal["ABSENT"] = "ABSENT"
    amount: float
    description: str


class HalfDayAbsentEntry(BaseModel):
    type: Literal["HALF_DAY_ABSENT"] = "HALF_DAY_ABSENT"
    work_minutes: int
    amount: float
    description: str


BreakdownEntry = Annotated[
    Union[LateEntry, EarlyExitEntry, ExcessBreakEntry, AbsentEntry, HalfDayAbsentEntry],
    Field(discriminator="type"),
]


class DeductionResult(BaseModel):
    late_minutes: int = 0
    late_deduction: float = 0
    early_exit_minutes: int = 0
    early_exit_deduction: float = 0
    excess_break_minutes: int = 0
    excess_break_deduction: float = 0
    absent_deduction: float = 0
    overtime_minutes: int = 0
    overtime_amount: float = 0
    total_deduction: float = 0
    net_work_minutes: int = 0
    total_break_minutes: int = 0
    deduction_breakdown: list[BreakdownEntry] = Field(default_factory=list)
