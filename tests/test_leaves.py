"""Tests for leave records."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_record_and_list_leave(async_client: AsyncClient, employee):
    resp = await async_client.post("/api/v1/leaves", json={
        "employee_id": employee.id,
        "date": "2026-03-10",
        "reason": "Family event",
    })
    assert resp.status_code == 201
    assert resp.json()["status"] == "APPROVED"

    listed = await async_client.get(f"/api/v1/leaves?employee_id={employee.id}&month=2026-03")
    assert [leave["date"] for leave in listed.json()] == ["2026-03-10"]
    other_month = await async_client.get("/api/v1/leaves?month=2026-04")
    assert other_month.json() == []


@pytest.mark.asyncio
async def test_recording_same_day_updates_status(async_client: AsyncClient, employee):
    payload = {"employee_id": employee.id, "date": "2026-03-11", "status": "pending"}
    first = await async_client.post("/api/v1/leaves", json=payload)
    second = await async_client.post("/api/v1/leaves", json={**payload, "status": "rejected"})
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["status"] == "REJECTED"


@pytest.mark.asyncio
async def test_leave_validation(async_client: AsyncClient, employee):
    bad_date = await async_client.post("/api/v1/leaves", json={"employee_id": employee.id, "date": "10/03/2026"})
    assert bad_date.status_code == 422
    bad_status = await async_client.post(
        "/api/v1/leaves", json={"employee_id": employee.id, "date": "2026-03-10", "status": "MAYBE"}
    )
    assert bad_status.status_code == 422


@pytest.mark.asyncio
async def test_leave_for_unknown_employee(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/leaves", json={"employee_id": 404, "date": "2026-03-10"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_bad_month_filter(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/leaves?month=2026-13")
    assert resp.status_code == 400
