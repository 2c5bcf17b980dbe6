"""
Requirement model - Jira issues imported into a group.

Maps one Jira issue (e.g. PROJ-456) to one requirement row. The issue key
is unique across the table, and imports are insert-only: a row that exists
is never updated by a later sync.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.database import Base

if TYPE_CHECKING:
    from models.group import Group

DEFAULT_PRIORITY: str = "Medium"
MAX_TITLE_LENGTH: int = 500


class Requirement(Base):
    """A requirement (epic/story) owned by a group."""

    __tablename__ = "requirements"
    __table_args__ = (
        Index("idx_requirements_group", "group_id"),
        Index("uq_requirements_jira_issue_key", "jira_issue_key", unique=True),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Jira linkage
    jira_issue_key: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    jira_issue_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    priority: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True, default=DEFAULT_PRIORITY
    )
    status: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=True
    )

    group: Mapped["Group"] = relationship("Group", back_populates="requirements")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "jira_issue_key": self.jira_issue_key,
            "jira_issue_url": self.jira_issue_url,
            "priority": self.priority,
            "status": self.status,
            "group_id": self.group_id,
        }
