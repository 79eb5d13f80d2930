"""
Wayfarer Backend — User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table.
Why:   Users are referenced by Tour.guides (weak references, joined at read
       time) and by Review.user.
Who:   Used by the user and review services, the tour join, and Alembic.

Internal fields:
    version              Optimistic-concurrency counter managed by the mapper
    password_changed_at  Written by the external auth flow
    Both are projected out whenever a user is embedded in another document.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

USER_ROLES = ("user", "guide", "lead-guide", "admin")


class User(Base):
    """A registered person: customer, guide or administrator."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    photo: Mapped[str] = mapped_column(String(255), nullable=False, default="default.jpg")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    password_changed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
