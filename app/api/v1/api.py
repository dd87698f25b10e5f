"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (attendance, employees, leaves,
                                  payroll_rules, reports)

api_router = APIRouter()

# Clock-in / clock-out / breaks for the calling employee
api_router.include_router(attendance.router)

# Employee directory & leave records
api_router.include_router(employees.router)
api_router.include_router(leaves.router)

# Deduction rules
api_router.include_router(payroll_rules.router)

# Daily logs, deduction reports, monthly payroll, health
api_router.include_router(reports.router)
