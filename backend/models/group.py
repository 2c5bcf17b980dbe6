"""
Group model - a student project team.

A group points at one GitHub repository and one Jira project; both drive
the sync endpoints.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.database import Base

if TYPE_CHECKING:
    from models.github_commit import GitHubCommit
    from models.requirement import Requirement
    from models.user import User


class Group(Base):
    """A project group owning imported commits and requirements."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # External sources
    jira_project_key: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    github_repo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    leader_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_groups_leader"),
        nullable=True,
    )
    lecturer_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_groups_lecturer"),
        nullable=True,
    )

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=True
    )

    members: Mapped[list["User"]] = relationship(
        "User", back_populates="group", foreign_keys="User.group_id"
    )
    commits: Mapped[list["GitHubCommit"]] = relationship(
        "GitHubCommit", back_populates="group", passive_deletes=True
    )
    requirements: Mapped[list["Requirement"]] = relationship(
        "Requirement", back_populates="group", passive_deletes=True
    )

    @classmethod
    def active(cls) -> Any:
        """Predicate for rows that have not been soft-deleted."""
        return cls.is_deleted.is_(False)
