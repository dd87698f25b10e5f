"""Pydantic schemas for the attendance, report, payroll and employee APIs."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.payroll import BreakdownEntry

_CODE_RE = re.compile(r"^[A-Za-z0-9_-]{2,32}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ── Clock in / out & breaks ─────────────────────────────────────────
class ClockRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    office_tag: str | None = None
    photo_reference: str | None = None


class BreakStartRequest(BaseModel):
    reason: str | None = None


class BreakSummary(BaseModel):
    total_breaks: int = 0
    total_break_minutes: int = 0
    total_break_hours: float = 0.0


class ClockInResponse(BaseModel):
    message: str
    attendance_id: int
    date: str
    status: str
    clock_in_time: str
    late_flag: bool
    late_minutes: int
    late_status: str
    auto_closed_sessions: int = 0


class ClockOutResponse(BaseModel):
    message: str
    attendance_id: int
    status: str
    clock_in_time: str
    clock_out_time: str
    net_work_minutes: int
    net_work_hours: float
    overtime_minutes: int
    overtime_amount: float
    total_deduction: float
    break_summary: BreakSummary


class BreakResponse(BaseModel):
    message: str
    status: str
    clock_in_time: str | None = None
    total_break_minutes: int = 0


class LiveStatusResponse(BaseModel):
    status: str | None = None
    clock_in_time: str | None = None
    clock_out_time: str | None = None
    total_break_minutes: int = 0
    current_break_minutes: int = 0
    running_work_minutes: int = 0


# ── Daily logs ──────────────────────────────────────────────────────
class EmployeeInfo(BaseModel):
    id: int
    name: str
    email: str | None = None
    employee_code: str | None = None
    department: str | None = None


class LocationRead(BaseModel):
    lat: float | None = None
    long: float | None = None
    office_tag: str | None = None


class DailyLogRow(BaseModel):
    id: int
    employee_id: int
    date: str
    status: str | None
    clock_in_time: str | None
    clock_out_time: str | None
    shift_start_time: str
    grace_period_minutes: int
    net_work_minutes: int
    net_work_hours: float
    overtime_minutes: int
    overtime_hours: float
    overtime_amount: float
    late_flag: bool
    late_minutes: int
    late_deduction: float
    early_exit_flag: bool
    early_exit_minutes: int
    early_exit_deduction: float
    excess_break_minutes: int = 0
    break_penalty: float = 0
    absent_deduction: float
    total_deduction: float
    deduction_breakdown: list[BreakdownEntry]
    break_summary: BreakSummary
    location: LocationRead | None = None
    photo_reference: str | None = None
    employee_info: EmployeeInfo | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class DailyLogsResponse(BaseModel):
    logs: list[DailyLogRow]
    pagination: Pagination


class DailySummaryResponse(BaseModel):
    date: str
    total_records: int
    present: int
    checked_in: int
    on_break: int
    checked_out: int
    on_leave: int
    late_employees: int
    not_clocked_in: int


class LateEmployeeRow(BaseModel):
    attendance_id: int
    employee_info: EmployeeInfo | None
    clock_in_time: str | None
    shift_start_time: str
    grace_period_minutes: int
    late_minutes: int
    deduction: float


class LateReportResponse(BaseModel):
    date: str
    late_employees: list[LateEmployeeRow]
    pagination: Pagination


# ── Deductions ──────────────────────────────────────────────────────
class DeductionTotals(BaseModel):
    total_records: int = 0
    unique_employees: int = 0
    late_count: int = 0
    early_exit_count: int = 0
    absent_count: int = 0
    overtime_count: int = 0
    break_penalty_count: int = 0
    grand_total_deductions: float = 0
    total_late_deductions: float = 0
    total_early_exit_deductions: float = 0
    total_absent_deductions: float = 0
    total_break_penalties: float = 0
    total_overtime_bonuses: float = 0


class DeductionReportRow(BaseModel):
    attendance_id: int
    date: str
    employee_id: int
    employee_info: EmployeeInfo | None
    late_minutes: int
    late_deduction: float
    early_exit_minutes: int
    early_exit_deduction: float
    excess_break_minutes: int
    break_penalty: float
    absent_deduction: float
    overtime_minutes: int
    overtime_bonus: float
    total_deduction: float
    net_work_hours: float
    clock_in_time: str | None
    clock_out_time: str | None


class DeductionSummaryResponse(BaseModel):
    date_from: str
    date_to: str
    summary: DeductionTotals
    deduction_reports: list[DeductionReportRow]


# ── Monthly payroll ─────────────────────────────────────────────────
class PayrollDeductionSummary(BaseModel):
    late_count: int
    total_late_minutes: int
    early_exit_count: int
    total_early_exit_minutes: int
    absent_count: int
    total_deduction: float


class PayrollLine(BaseModel):
    employee_info: EmployeeInfo
    monthly_salary: float
    working_days: int
    leave_days: int
    absent_days: int
    deduction_summary: PayrollDeductionSummary
    overtime_bonus: float
    net_salary: float


class MonthlyPayrollResponse(BaseModel):
    year: int
    month: int
    month_name: str
    payroll_report: list[PayrollLine]


# ── Payroll rules ───────────────────────────────────────────────────
class PayrollRulesRead(BaseModel):
    id: int
    late_grace_period_minutes: int
    late_after_30_minutes: float
    late_after_1_hour: float
    late_after_1_5_hours: float
    overtime_after_1_hour: float
    overtime_after_2_hours: float
    overtime_after_3_hours: float
    overtime_after_4_hours: float
    early_exit_grace_minutes: int
    early_exit_penalty_per_minute: float
    absent_full_day_penalty: float
    half_day_penalty: float
    half_day_threshold_minutes: int
    standard_shift_minutes: int
    default_shift_start: str
    timezone_offset: str
    max_break_minutes: int
    excess_break_penalty_per_minute: float
    is_active: bool
    effective_from: datetime | None
    notes: str
    created_by: int | None = None
    updated_by: int | None = None

    model_config = {"from_attributes": True}


class PayrollRulesUpdate(BaseModel):
    late_grace_period_minutes: int | None = Field(default=None, ge=0)
    late_after_30_minutes: float | None = Field(default=None, ge=0)
    late_after_1_hour: float | None = Field(default=None, ge=0)
    late_after_1_5_hours: float | None = Field(default=None, ge=0)
    overtime_after_1_hour: float | None = Field(default=None, ge=0)
    overtime_after_2_hours: float | None = Field(default=None, ge=0)
    overtime_after_3_hours: float | None = Field(default=None, ge=0)
    overtime_after_4_hours: float | None = Field(default=None, ge=0)
    early_exit_grace_minutes: int | None = Field(default=None, ge=0)
    early_exit_penalty_per_minute: float | None = Field(default=None, ge=0)
    absent_full_day_penalty: float | None = Field(default=None, ge=0)
    half_day_penalty: float | None = Field(default=None, ge=0)
    half_day_threshold_minutes: int | None = Field(default=None, ge=0)
    standard_shift_minutes: int | None = Field(default=None, ge=0)
    default_shift_start: str | None = None
    timezone_offset: str | None = None
    max_break_minutes: int | None = Field(default=None, ge=0)
    excess_break_penalty_per_minute: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=500)


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(BaseModel):
    name: str
    employee_code: str
    user_id: int | None = None
    email: str | None = None
    department: str | None = None
    position: str | None = None
    monthly_salary: float = Field(default=0.0, ge=0)

    @field_validator("employee_code")
    @classmethod
    def _code(cls, v: str) -> str:
        v = v.strip()
        if not _CODE_RE.match(v):
            raise ValueError("Employee code must be 2-32 alphanumeric chars")
        return v

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 200:
            raise ValueError("Name must not exceed 200 characters")
        return v


class EmployeeUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    department: str | None = None
    position: str | None = None
    monthly_salary: float | None = Field(default=None, ge=0)
    user_id: int | None = None


class EmployeeRead(BaseModel):
    id: int
    user_id: int | None
    name: str
    employee_code: str
    email: str | None
    department: str | None
    position: str | None
    monthly_salary: float
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ── Leave ───────────────────────────────────────────────────────────
VALID_LEAVE_STATUSES = ["APPROVED", "PENDING", "REJECTED"]


class LeaveCreate(BaseModel):
    employee_id: int
    date: str  # YYYY-MM-DD
    status: str = "APPROVED"
    reason: str | None = None

    @field_validator("date")
    @classmethod
    def _date(cls, v: str) -> str:
        if not _DATE_RE.match(v):
            raise ValueError("Date must be YYYY-MM-DD")
        return v

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LEAVE_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(VALID_LEAVE_STATUSES)}")
        return v


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    date: str
    status: str
    reason: str | None

    model_config = {"from_attributes": True}


# ── Health / Generic ───────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool


class DeleteResponse(BaseModel):
    success: bool
    message: str
