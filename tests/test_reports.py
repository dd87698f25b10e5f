"""Tests for daily logs, deduction summaries, monthly payroll & health."""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from app.api.v1.endpoints.reports import lookback_start
from app.core.timeutils import local_today
from app.models.leave import Leave

DAY = "2026-03-02"


async def _seed_march(make_employee, make_attendance, db_session):
    """Two employees, a handful of March days and one approved leave."""
    alice = await make_employee(2, "EMP-001", name="Alice Khan", salary=50000)
    bob = await make_employee(3, "EMP-002", name="Bob Ali", salary=40000)

    await make_attendance(alice.id, DAY, "09:00", "17:00")
    await make_attendance(alice.id, "2026-03-03", "10:05", "18:05")  # late 200
    await make_attendance(bob.id, DAY, "11:00", "19:00")  # late 250
    await make_attendance(bob.id, "2026-03-03", "09:00", "12:00")  # early 4275 + half day 500

    db_session.add(Leave(employee_id=alice.id, date="2026-03-04", status="APPROVED"))
    db_session.add(Leave(employee_id=bob.id, date="2026-03-04", status="REJECTED"))
    await db_session.commit()
    return alice, bob


# ── Daily logs ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_daily_logs_for_a_date(async_client: AsyncClient, make_employee, make_attendance, db_session):
    await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get(f"/api/v1/daily-logs?date={DAY}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["pagination"]["total"] == 2
    assert len(data["logs"]) == 2
    bob_row = next(r for r in data["logs"] if r["employee_info"]["name"] == "Bob Ali")
    assert bob_row["late_minutes"] == 120
    assert bob_row["late_deduction"] == 250
    assert bob_row["deduction_breakdown"][0]["type"] == "LATE"
    assert bob_row["location"]["office_tag"] == "HQ"


@pytest.mark.asyncio
async def test_daily_logs_pagination(async_client: AsyncClient, make_employee, make_attendance, db_session):
    await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get(f"/api/v1/daily-logs?date={DAY}&page=2&limit=1")
    data = resp.json()
    assert len(data["logs"]) == 1
    assert data["pagination"]["total_pages"] == 2


@pytest.mark.asyncio
async def test_daily_logs_status_filter(async_client: AsyncClient, make_employee, make_attendance, db_session):
    alice, _ = await _seed_march(make_employee, make_attendance, db_session)
    await make_attendance(alice.id, "2026-03-05", "09:00", None)
    resp = await async_client.get("/api/v1/daily-logs?date=2026-03-05&status=CHECKED_IN")
    assert resp.json()["pagination"]["total"] == 1
    resp = await async_client.get("/api/v1/daily-logs?date=2026-03-05&status=CHECKED_OUT")
    assert resp.json()["pagination"]["total"] == 0


def test_lookback_window_starts_from_local_day():
    # 20:00 UTC on 1 March is already 2 March on the +05:30 clock
    now = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)
    assert lookback_start("+05:30", now) == "2026-01-21"
    assert lookback_start("+00:00", now) == "2026-01-20"


@pytest.mark.asyncio
async def test_daily_logs_default_window_skips_old_rows(
    async_client: AsyncClient, make_employee, make_attendance
):
    emp = await make_employee(2, "EMP-001")
    await make_attendance(emp.id, "2001-01-01", "09:00", "17:00")
    recent = await make_attendance(emp.id, local_today("+05:30"), "00:00", None)
    data = (await async_client.get("/api/v1/daily-logs")).json()
    assert [row["id"] for row in data["logs"]] == [recent.id]


@pytest.mark.asyncio
async def test_employee_sees_only_own_logs(
    async_client: AsyncClient, make_employee, make_attendance, db_session, login_as
):
    alice, _ = await _seed_march(make_employee, make_attendance, db_session)
    login_as(alice.user_id)
    resp = await async_client.get(f"/api/v1/daily-logs?date={DAY}")
    data = resp.json()
    assert data["pagination"]["total"] == 1
    assert data["logs"][0]["employee_id"] == alice.id
    assert data["logs"][0]["employee_info"] is None


@pytest.mark.asyncio
async def test_daily_log_detail_is_owner_only(
    async_client: AsyncClient, make_employee, make_attendance, db_session, login_as
):
    alice, bob = await _seed_march(make_employee, make_attendance, db_session)
    bob_log = await make_attendance(bob.id, "2026-03-06", "09:00", "17:00")
    login_as(alice.user_id)
    resp = await async_client.get(f"/api/v1/daily-logs/{bob_log.id}")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_daily_log_detail_prefers_cached_values(
    async_client: AsyncClient, make_employee, make_attendance
):
    emp = await make_employee(2, "EMP-001")
    record = await make_attendance(emp.id, DAY, "10:05", "18:05", late_deduction=180.0)
    resp = await async_client.get(f"/api/v1/daily-logs/{record.id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["late_deduction"] == 180.0
    assert data["late_minutes"] == 95
    assert data["total_deduction"] == 200


@pytest.mark.asyncio
async def test_daily_log_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/daily-logs/9999")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_daily_summary(async_client: AsyncClient, make_employee, make_attendance, db_session):
    await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get(f"/api/v1/daily-logs/summary?date={DAY}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["date"] == DAY
    assert data["total_records"] == 2
    assert data["checked_out"] == 2
    assert data["late_employees"] == 1


@pytest.mark.asyncio
async def test_late_report(async_client: AsyncClient, make_employee, make_attendance, db_session):
    await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get("/api/v1/daily-logs/late-report?date=2026-03-03")
    assert resp.status_code == 200
    rows = resp.json()["late_employees"]
    assert len(rows) == 1
    assert rows[0]["employee_info"]["employee_code"] == "EMP-001"
    assert rows[0]["late_minutes"] == 95


@pytest.mark.asyncio
async def test_late_report_requires_privilege(async_client: AsyncClient, login_as):
    login_as(9)
    resp = await async_client.get("/api/v1/daily-logs/late-report")
    assert resp.status_code == 403


# ── Deduction summary ───────────────────────────────────────────────
@pytest.mark.asyncio
async def test_deduction_summary_empty_range(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/deductions/summary?date=2001-01-01")
    assert resp.status_code == 200
    data = resp.json()
    assert data["summary"]["total_records"] == 0
    assert data["summary"]["grand_total_deductions"] == 0
    assert data["deduction_reports"] == []


@pytest.mark.asyncio
async def test_deduction_summary_over_range(
    async_client: AsyncClient, make_employee, make_attendance, db_session
):
    await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get(
        "/api/v1/deductions/summary?date_from=2026-03-01&date_to=2026-03-31"
    )
    summary = resp.json()["summary"]
    assert summary["total_records"] == 4
    assert summary["unique_employees"] == 2
    assert summary["late_count"] == 2
    assert summary["total_late_deductions"] == 450
    assert summary["total_early_exit_deductions"] == 4275
    assert summary["total_absent_deductions"] == 500
    assert summary["grand_total_deductions"] == 450 + 4275 + 500


@pytest.mark.asyncio
async def test_deduction_summary_for_one_employee(
    async_client: AsyncClient, make_employee, make_attendance, db_session
):
    alice, _ = await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get(
        f"/api/v1/deductions/summary?date_from=2026-03-01&date_to=2026-03-31&employee_id={alice.id}"
    )
    summary = resp.json()["summary"]
    assert summary["total_records"] == 2
    assert summary["grand_total_deductions"] == 200


@pytest.mark.asyncio
async def test_deduction_summary_rejects_half_range(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/deductions/summary?date_from=2026-03-01")
    assert resp.status_code == 400


# ── Monthly payroll ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_monthly_payroll(async_client: AsyncClient, make_employee, make_attendance, db_session):
    await _seed_march(make_employee, make_attendance, db_session)
    resp = await async_client.get("/api/v1/payroll/monthly?year=2026&month=3")
    assert resp.status_code == 200
    data = resp.json()
    assert data["month_name"] == "March"
    lines = {line["employee_info"]["employee_code"]: line for line in data["payroll_report"]}

    alice = lines["EMP-001"]
    assert alice["working_days"] == 2
    assert alice["leave_days"] == 1
    assert alice["absent_days"] == 28
    assert alice["deduction_summary"]["total_deduction"] == 200
    assert alice["net_salary"] == 49800

    bob = lines["EMP-002"]
    assert bob["leave_days"] == 0
    assert bob["deduction_summary"]["late_count"] == 1
    assert bob["deduction_summary"]["absent_count"] == 1
    assert bob["net_salary"] == 40000 - (250 + 4275 + 500)


@pytest.mark.asyncio
async def test_monthly_payroll_rejects_bad_month(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/payroll/monthly?year=2026&month=13")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_monthly_payroll_requires_privilege(async_client: AsyncClient, login_as):
    login_as(7, role="intern")
    resp = await async_client.get("/api/v1/payroll/monthly?year=2026&month=3")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_manager_can_read_payroll(async_client: AsyncClient, login_as):
    login_as(8, role="manager")
    resp = await async_client.get("/api/v1/payroll/monthly?year=2026&month=2")
    assert resp.status_code == 200
    assert resp.json()["payroll_report"] == []


# ── Health ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_health_endpoint(async_client: AsyncClient):
    """GET /health should report DB connectivity."""
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"db": True}
