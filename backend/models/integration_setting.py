"""
Integration setting model - global key/value credentials for GitHub and Jira.

Runtime settings take precedence over the static values in config.Settings
(see services/credentials.py). Rows are upserted by key.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.database import Base

GITHUB_TOKEN_KEY: str = "GitHub:PAT"
JIRA_BASE_URL_KEY: str = "Jira:BaseUrl"
JIRA_EMAIL_KEY: str = "Jira:Email"
JIRA_API_TOKEN_KEY: str = "Jira:ApiToken"


class IntegrationSetting(Base):
    """A single named integration setting."""

    __tablename__ = "integration_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
