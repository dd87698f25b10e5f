"""
Deduction calculator: one attendance day in, one ``DeductionResult`` out.

Pure and synchronous: no I/O, no module state. The active rule set is
passed in by the caller. Evaluation order (and therefore breakdown order)
is late -> early exit -> excess break -> absence; overtime is a bonus and
never part of ``total_deduction``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta

from app.core.timeutils import minutes_between, parse_hhmm, parse_offset
from app.schemas.payroll import (AbsentEntry, AttendanceDay, BreakEntry,
                                 DeductionResult, EarlyExitEntry,
                                 ExcessBreakEntry, HalfDayAbsentEntry,
                                 LateEntry, PayrollRules)

logger = logging.getLogger(__name__)


def pick_tier(value: int, tiers: Sequence[tuple[int, float]]) -> float:
    """Return the amount of the first (highest) bracket *value* reaches, else 0."""
    for threshold, amount in tiers:
        if value >= threshold:
            return amount
    return 0


def _fmt_hm(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


def compute_deduction(
    record: AttendanceDay,
    breaks: Sequence[BreakEntry],
    rules: PayrollRules | None,
) -> DeductionResult:
    """Evaluate every rule for one day.

    Never raises: a missing rule set or any failure inside the evaluation
    yields an all-zero result so one bad record cannot break a report.
    """
    if rules is None:
        logger.warning("No active payroll rules, returning zero deductions for %s", record.date)
        return DeductionResult()
    try:
        return _evaluate(record, breaks, rules)
    except Exception:
        logger.exception("Deduction computation failed for %s", getattr(record, "date", "?"))
        return DeductionResult()


def _evaluate(
    record: AttendanceDay,
    breaks: Sequence[BreakEntry],
    rules: PayrollRules,
) -> DeductionResult:
    breakdown: list = []
    clock_in = record.clock_in.time if record.clock_in else None
    clock_out = record.clock_out.time if record.clock_out else None

    # ── Work duration ───────────────────────────────────────────────
    total_break = sum(b.break_duration or 0 for b in breaks)
    total_work = 0
    if clock_in and clock_out:
        total_work = max(0, minutes_between(clock_in, clock_out) - total_break)

    # ── Late arrival (flat tier per bracket) ────────────────────────
    late_minutes = 0
    late_deduction: float = 0
    if clock_in:
        shift_start = parse_hhmm(record.shift_start_time or rules.default_shift_start)
        local_in = clock_in.astimezone(parse_offset(rules.timezone_offset))
        expected_in = local_in.replace(
            hour=shift_start.hour, minute=shift_start.minute, second=0, microsecond=0
        )
        diff = minutes_between(expected_in, local_in)
        grace = rules.late_grace_period_minutes
        if diff > grace:
            late_minutes = diff
            late_deduction = pick_tier(diff - grace, rules.late_tiers())
            breakdown.append(
                LateEntry(
                    minutes=late_minutes,
                    amount=late_deduction,
                    description=f"Late by {_fmt_hm(late_minutes)} ({grace} min grace) - {late_deduction:g}",
                )
            )

    # ── Early exit ──────────────────────────────────────────────────
    early_exit_minutes = 0
    early_exit_deduction: float = 0
    if clock_in and clock_out:
        expected_end = clock_in + timedelta(minutes=rules.standard_shift_minutes)
        diff = minutes_between(clock_out, expected_end)
        grace = rules.early_exit_grace_minutes
        early_exit_minutes = max(0, diff - grace)
        if early_exit_minutes > 0:
            rate = rules.early_exit_penalty_per_minute
            early_exit_deduction = early_exit_minutes * rate
            breakdown.append(
                EarlyExitEntry(
                    minutes=early_exit_minutes,
                    amount=early_exit_deduction,
                    description=f"Early exit by {early_exit_minutes} min ({rate:g}/min after {grace} min grace)",
                )
            )

    # ── Excess break ────────────────────────────────────────────────
    excess_break = 0
    excess_break_deduction: float = 0
    if total_break > rules.max_break_minutes:
        excess_break = total_break - rules.max_break_minutes
        rate = rules.excess_break_penalty_per_minute
        excess_break_deduction = excess_break * rate
        breakdown.append(
            ExcessBreakEntry(
                minutes=excess_break,
                amount=excess_break_deduction,
                description=f"Excess break {excess_break} min ({rate:g}/min beyond {rules.max_break_minutes} min)",
            )
        )

    # ── Absence / half day ──────────────────────────────────────────
    absent_deduction: float = 0
    if not clock_in:
        absent_deduction = rules.absent_full_day_penalty
        breakdown.append(AbsentEntry(amount=absent_deduction, description="Full day absent"))
    elif clock_out and total_work < rules.half_day_threshold_minutes:
        absent_deduction = rules.half_day_penalty
        breakdown.append(
            HalfDayAbsentEntry(
                work_minutes=total_work,
                amount=absent_deduction,
                description=(
                    f"Worked {total_work / 60:.2f}h "
                    f"(< {rules.half_day_threshold_minutes / 60:g}h threshold) - half day penalty"
                ),
            )
        )

    # ── Overtime bonus ──────────────────────────────────────────────
    overtime_minutes = 0
    overtime_amount: float = 0
    if total_work > rules.standard_shift_minutes:
        overtime_minutes = total_work - rules.standard_shift_minutes
        overtime_amount = pick_tier(overtime_minutes, rules.overtime_tiers())

    return DeductionResult(
        late_minutes=late_minutes,
        late_deduction=late_deduction,
        early_exit_minutes=early_exit_minutes,
        early_exit_deduction=early_exit_deduction,
        excess_break_minutes=excess_break,
        excess_break_deduction=excess_break_deduction,
        absent_deduction=absent_deduction,
        overtime_minutes=overtime_minutes,
        overtime_amount=overtime_amount,
        total_deduction=sum(entry.amount for entry in breakdown),
        net_work_minutes=total_work,
        total_break_minutes=total_break,
        deduction_breakdown=breakdown,
    )
