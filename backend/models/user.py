"""
User model - students, team leaders, lecturers and admins.

Users carry an optional GitHub username so imported commits can be linked
back to them (see services/identity.py).
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.database import Base

if TYPE_CHECKING:
    from models.group import Group


class UserRole(str, Enum):
    ADMIN = "Admin"
    LECTURER = "Lecturer"
    TEAM_LEADER = "TeamLeader"
    STUDENT = "Student"


class User(Base):
    """User model representing authenticated users."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    student_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.STUDENT.value
    )

    # External identities
    github_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    jira_account_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True, index=True
    )

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=True
    )

    group: Mapped[Optional["Group"]] = relationship(
        "Group", back_populates="members", foreign_keys=[group_id]
    )

    @classmethod
    def active(cls) -> Any:
        """Predicate for rows that have not been soft-deleted."""
        return cls.is_deleted.is_(False)
