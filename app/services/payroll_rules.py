"""
Rule configuration store: the single active ``PayrollSetting`` row.

Reads create a default configuration on first access. Activating a new
version deactivates every other row inside the same transaction, so the
single-active invariant holds after every commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll_setting import PayrollSetting
from app.models.user import User
from app.schemas.payroll import PayrollRules

logger = logging.getLogger(__name__)


async def get_active_setting(db: AsyncSession, user: User | None = None) -> PayrollSetting:
    """Fetch the active settings row, creating it with defaults if absent."""
    result = await db.execute(
        select(PayrollSetting)
        .where(PayrollSetting.is_active.is_(True))
        .order_by(PayrollSetting.effective_from.desc())
        .limit(1)
    )
    setting = result.scalar_one_or_none()
    if setting is None:
        setting = PayrollSetting(
            **PayrollRules().model_dump(),
            is_active=True,
            notes="Default payroll settings",
            created_by=user.id if user else None,
        )
        db.add(setting)
        await db.commit()
        await db.refresh(setting)
        logger.info("Created default payroll settings (id=%d)", setting.id)
    return setting


async def get_active_rules(db: AsyncSession) -> PayrollRules:
    """The active rule set as the calculator's contract. Fetch once per batch."""
    return PayrollRules.model_validate(await get_active_setting(db))


async def update_active_rules(
    db: AsyncSession, changes: dict[str, Any], user: User
) -> PayrollSetting:
    """Patch the active version in place."""
    setting = await get_active_setting(db, user)
    # validate the merged rule set before touching the row
    PayrollRules.model_validate({**PayrollRules.model_validate(setting).model_dump(), **changes})

    for field, value in changes.items():
        setattr(setting, field, value)
    setting.updated_by = user.id

    await db.commit()
    await db.refresh(setting)
    logger.info("Payroll settings %d updated: %s", setting.id, changes)
    return setting


async def activate_new_rules(
    db: AsyncSession, values: dict[str, Any], user: User
) -> PayrollSetting:
    """Store a new version and make it the only active one."""
    rules = PayrollRules.model_validate(values)
    notes = values.get("notes") or ""

    await db.execute(
        update(PayrollSetting)
        .where(PayrollSetting.is_active.is_(True))
        .values(is_active=False)
    )
    setting = PayrollSetting(
        **rules.model_dump(),
        is_active=True,
        effective_from=datetime.now(timezone.utc),
        notes=notes,
        created_by=user.id,
        updated_by=user.id,
    )
    db.add(setting)
    await db.commit()
    await db.refresh(setting)
    logger.info("Activated payroll settings version %d", setting.id)
    return setting


async def list_rule_history(db: AsyncSession) -> list[PayrollSetting]:
    result = await db.execute(
        select(PayrollSetting).order_by(PayrollSetting.id.desc())
    )
    return list(result.scalars().all())
