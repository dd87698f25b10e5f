"""
Payroll rule endpoints: admin-configurable deduction & overtime rates.

Versioned rows in payroll_settings, exactly one active. GET returns the
active version (created with defaults on first read), PUT patches it in
place and POST stores a new version that supersedes it. A merged rule set
that fails validation surfaces as 422 through the global handlers.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_admin, require_privileged
from app.models.payroll_setting import PayrollSetting
from app.models.user import User
from app.schemas.attendance import PayrollRulesRead, PayrollRulesUpdate
from app.services.payroll_rules import (activate_new_rules, get_active_rules,
                                        get_active_setting, list_rule_history,
                                        update_active_rules)

router = APIRouter(prefix="/payroll/rules", tags=["payroll-rules"])
logger = logging.getLogger(__name__)


@router.get("", response_model=PayrollRulesRead)
async def get_rules(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_privileged),
) -> PayrollSetting:
    """Current payroll rules."""
    return await get_active_setting(db)


@router.put("", response_model=PayrollRulesRead)
async def update_rules(
    body: PayrollRulesUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PayrollSetting:
    """Patch the active rules. Omitted fields keep their current value."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return await update_active_rules(db, changes, admin)


@router.post("", response_model=PayrollRulesRead, status_code=201)
async def create_rules_version(
    body: PayrollRulesUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PayrollSetting:
    """Activate a new rule version; unspecified fields inherit from the current one."""
    current = await get_active_rules(db)
    values = {**current.model_dump(), **body.model_dump(exclude_unset=True, exclude_none=True)}
    setting = await activate_new_rules(db, values, admin)
    logger.info("Rules version %d activated by user %d", setting.id, admin.id)
    return setting


@router.get("/history", response_model=list[PayrollRulesRead])
async def rules_history(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[PayrollSetting]:
    return await list_rule_history(db)
