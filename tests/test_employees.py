"""Tests for employee CRUD endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_employee(async_client: AsyncClient):
    """POST /employees should create a new employee."""
    resp = await async_client.post("/api/v1/employees", json={
        "name": "Bob Jones",
        "employee_code": "BOB-001",
        "email": "bob@example.com",
        "department": "Engineering",
        "position": "Developer",
        "monthly_salary": 45000,
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Bob Jones"
    assert data["employee_code"] == "BOB-001"
    assert data["monthly_salary"] == 45000
    assert data["is_active"] is True
    assert data["id"] is not None


@pytest.mark.asyncio
async def test_create_duplicate_code_rejected(async_client: AsyncClient):
    """Creating two employees with the same code should fail."""
    await async_client.post("/api/v1/employees", json={"name": "Emp1", "employee_code": "DUP-001"})
    resp = await async_client.post("/api/v1/employees", json={"name": "Emp2", "employee_code": "DUP-001"})
    assert resp.status_code == 400
    assert "already registered" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_user_can_link_only_one_profile(async_client: AsyncClient):
    await async_client.post("/api/v1/employees", json={"name": "A", "employee_code": "LNK-1", "user_id": 10})
    resp = await async_client.post("/api/v1/employees", json={"name": "B", "employee_code": "LNK-2", "user_id": 10})
    assert resp.status_code == 400
    assert "already linked" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_invalid_employee_code_rejected(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/employees", json={"name": "X", "employee_code": "no spaces!"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_employees(async_client: AsyncClient):
    """GET /employees should return all active employees."""
    await async_client.post("/api/v1/employees", json={"name": "E1", "employee_code": "LIST-001"})
    await async_client.post("/api/v1/employees", json={"name": "E2", "employee_code": "LIST-002"})
    resp = await async_client.get("/api/v1/employees")
    assert resp.status_code == 200
    assert len(resp.json()) >= 2


@pytest.mark.asyncio
async def test_list_employees_pagination(async_client: AsyncClient):
    """GET /employees with skip/limit should paginate."""
    for i in range(5):
        await async_client.post("/api/v1/employees", json={"name": f"P{i}", "employee_code": f"PAGE-{i:03d}"})
    resp = await async_client.get("/api/v1/employees?skip=2&limit=2")
    assert resp.status_code == 200
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_list_employees_search(async_client: AsyncClient):
    await async_client.post("/api/v1/employees", json={"name": "Zara Malik", "employee_code": "SRCH-1"})
    await async_client.post("/api/v1/employees", json={"name": "Omar Shah", "employee_code": "SRCH-2"})
    resp = await async_client.get("/api/v1/employees?search=zara")
    assert [e["employee_code"] for e in resp.json()] == ["SRCH-1"]


@pytest.mark.asyncio
async def test_get_employee_by_id(async_client: AsyncClient):
    """GET /employees/{id} should return one employee."""
    create = await async_client.post("/api/v1/employees", json={"name": "Solo", "employee_code": "SOLO-001"})
    eid = create.json()["id"]
    resp = await async_client.get(f"/api/v1/employees/{eid}")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Solo"


@pytest.mark.asyncio
async def test_get_employee_not_found(async_client: AsyncClient):
    """Requesting a non-existent employee should return 404."""
    resp = await async_client.get("/api/v1/employees/9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_employee(async_client: AsyncClient):
    """PUT /employees/{id} should update employee details."""
    create = await async_client.post("/api/v1/employees", json={"name": "Old Name", "employee_code": "UPD-001"})
    eid = create.json()["id"]
    resp = await async_client.put(
        f"/api/v1/employees/{eid}",
        json={"name": "New Name", "department": "Sales", "monthly_salary": 60000},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "New Name"
    assert data["department"] == "Sales"
    assert data["monthly_salary"] == 60000


@pytest.mark.asyncio
async def test_delete_employee_soft(async_client: AsyncClient):
    """DELETE /employees/{id} deactivates; the employee disappears from lists."""
    create = await async_client.post("/api/v1/employees", json={"name": "Gone", "employee_code": "DEL-001"})
    eid = create.json()["id"]
    resp = await async_client.delete(f"/api/v1/employees/{eid}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert (await async_client.get(f"/api/v1/employees/{eid}")).status_code == 404
    codes = [e["employee_code"] for e in (await async_client.get("/api/v1/employees")).json()]
    assert "DEL-001" not in codes


@pytest.mark.asyncio
async def test_employee_role_cannot_manage_employees(async_client: AsyncClient, login_as):
    login_as(4)
    resp = await async_client.post("/api/v1/employees", json={"name": "X", "employee_code": "NOPE-1"})
    assert resp.status_code == 403
    assert (await async_client.get("/api/v1/employees")).status_code == 403


@pytest.mark.asyncio
async def test_my_profile(async_client: AsyncClient, employee, login_as):
    login_as(employee.user_id)
    resp = await async_client.get("/api/v1/employees/me")
    assert resp.status_code == 200
    assert resp.json()["employee_code"] == "EMP-001"
