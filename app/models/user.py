"""
User model: identity behind bearer tokens & role-based access control.

Credentials live with the identity service that issues tokens; this table
only mirrors who the ``sub`` claim refers to and what role they hold.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base

PRIVILEGED_ROLES = frozenset({"super_admin", "admin", "manager"})
SELF_SCOPED_ROLES = frozenset({"employee", "sr_employee", "jr_employee", "intern"})


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="employee",
        server_default="employee",
    )  # super_admin | admin | manager | employee | sr_employee | jr_employee | intern
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
