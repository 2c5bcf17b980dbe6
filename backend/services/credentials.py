"""
Credential resolution for GitHub and Jira.

Runtime settings (the ``integration_settings`` table, editable by admins)
take precedence over the static process configuration in ``config.settings``.
Nothing is cached: credentials are re-read for every sync so that edits made
between runs take effect immediately.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.integration_setting import (
    GITHUB_TOKEN_KEY,
    JIRA_API_TOKEN_KEY,
    JIRA_BASE_URL_KEY,
    JIRA_EMAIL_KEY,
    IntegrationSetting,
)

logger = logging.getLogger(__name__)

CredentialKind = Literal["github", "jira"]

MASK: str = "****"

# kind -> field -> (settings key, static config attribute)
CREDENTIAL_FIELDS: dict[str, dict[str, tuple[str, str]]] = {
    "github": {
        "token": (GITHUB_TOKEN_KEY, "GITHUB_TOKEN"),
    },
    "jira": {
        "base_url": (JIRA_BASE_URL_KEY, "JIRA_BASE_URL"),
        "email": (JIRA_EMAIL_KEY, "JIRA_EMAIL"),
        "api_token": (JIRA_API_TOKEN_KEY, "JIRA_API_TOKEN"),
    },
}

SETTING_DESCRIPTIONS: dict[str, str] = {
    GITHUB_TOKEN_KEY: "GitHub Personal Access Token",
    JIRA_BASE_URL_KEY: "Jira Base URL",
    JIRA_EMAIL_KEY: "Jira Account Email",
    JIRA_API_TOKEN_KEY: "Jira API Token",
}


async def load_settings(session: AsyncSession) -> dict[str, str]:
    """Return every persisted integration setting as key -> value."""
    result = await session.execute(
        select(IntegrationSetting.key, IntegrationSetting.value)
    )
    return {row[0]: row[1] for row in result.all()}


async def resolve_credentials(
    session: AsyncSession, kind: CredentialKind
) -> dict[str, Optional[str]]:
    """
    Resolve the effective credentials for one integration.

    Each field is looked up in the persisted settings first; a missing or
    empty value falls back to the static configuration; a field with
    neither resolves to None.

    Args:
        session: Database session used to read the settings table
        kind: "github" or "jira"

    Returns:
        Mapping of field name to value (or None)
    """
    fields = CREDENTIAL_FIELDS.get(kind)
    if fields is None:
        raise ValueError(f"Unknown credential kind: {kind}")

    persisted: dict[str, str] = await load_settings(session)
    resolved: dict[str, Optional[str]] = {}
    for field, (setting_key, config_attr) in fields.items():
        value: Optional[str] = persisted.get(setting_key) or getattr(settings, config_attr, None)
        resolved[field] = value or None

    missing: list[str] = [name for name, value in resolved.items() if value is None]
    if missing:
        logger.debug("Unresolved %s credential fields: %s", kind, ", ".join(missing))
    return resolved


def mask_secret(value: Optional[str]) -> Optional[str]:
    """Mask a secret for display: first 4 and last 4 characters only."""
    if not value:
        return None
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return MASK


async def upsert_setting(
    session: AsyncSession,
    key: str,
    value: Optional[str],
    description: Optional[str] = None,
) -> Optional[IntegrationSetting]:
    """
    Insert or update a setting by key. Empty values are ignored so that a
    partially filled form never wipes a stored secret.

    The caller commits.
    """
    if not value:
        return None

    result = await session.execute(
        select(IntegrationSetting).where(IntegrationSetting.key == key)
    )
    setting: Optional[IntegrationSetting] = result.scalar_one_or_none()
    now: datetime = datetime.utcnow()

    if setting is None:
        setting = IntegrationSetting(
            key=key,
            value=value,
            description=description or SETTING_DESCRIPTIONS.get(key),
            updated_at=now,
        )
        session.add(setting)
    else:
        setting.value = value
        setting.updated_at = now

    logger.info("Integration setting %s saved", key)
    return setting


async def integration_status(session: AsyncSession) -> dict[str, bool]:
    """Report whether each integration has persisted credentials."""
    persisted: dict[str, str] = await load_settings(session)
    return {
        "github_configured": bool(persisted.get(GITHUB_TOKEN_KEY)),
        "jira_configured": all(
            persisted.get(key)
            for key in (JIRA_BASE_URL_KEY, JIRA_EMAIL_KEY, JIRA_API_TOKEN_KEY)
        ),
    }
