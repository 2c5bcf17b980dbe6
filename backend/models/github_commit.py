"""
GitHub Commit model - commits imported for a group's repository.

The commit SHA is the natural key and is unique across the whole table:
a commit imported under one group is never imported again under another.
Commits are mapped to internal users by email or GitHub username at import
time and never re-resolved afterwards.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config import to_iso8601
from models.database import Base

if TYPE_CHECKING:
    from models.group import Group
    from models.user import User

MAX_MESSAGE_LENGTH: int = 500


class GitHubCommit(Base):
    """A commit pulled from a group's GitHub repository."""

    __tablename__ = "github_commits"
    __table_args__ = (
        Index("idx_gh_commits_group", "group_id"),
        Index("idx_gh_commits_commit_date", "commit_date"),
        Index("idx_gh_commits_user", "user_id"),
        Index("uq_gh_commits_sha", "commit_sha", unique=True),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Commit data
    commit_sha: Mapped[str] = mapped_column(String(40), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Author info (from Git)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    author_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    author_login: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # GitHub username, when GitHub linked the commit to an account
    commit_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Stats (not available from the listing endpoint)
    additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deletions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Links
    url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    # Mapped internal user (resolved once, at import)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=True
    )

    # Relationships
    group: Mapped["Group"] = relationship("Group", back_populates="commits")
    user: Mapped[Optional["User"]] = relationship("User")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "commit_sha": self.commit_sha,
            "message": self.message,
            "author_name": self.author_name,
            "commit_date": to_iso8601(self.commit_date),
            "additions": self.additions,
            "deletions": self.deletions,
            "url": self.url,
            "user_id": self.user_id,
        }
