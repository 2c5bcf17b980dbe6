"""
Admin settings endpoints for integration credentials.

Endpoints:
- GET  /api/admin/settings/integration - Current settings, secrets masked
- POST /api/admin/settings/integration - Save settings (empty fields are kept)
- GET  /api/admin/settings/integration/status - Which integrations are configured
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth_middleware import authorize
from models.database import get_db
from models.integration_setting import (
    GITHUB_TOKEN_KEY,
    JIRA_API_TOKEN_KEY,
    JIRA_BASE_URL_KEY,
    JIRA_EMAIL_KEY,
)
from services.credentials import (
    integration_status,
    load_settings,
    mask_secret,
    upsert_setting,
)

router = APIRouter(dependencies=[Depends(authorize)])
logger = logging.getLogger(__name__)


class IntegrationSettingsResponse(BaseModel):
    """Stored integration settings; tokens are masked."""

    github_token: Optional[str] = None
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None


class SaveIntegrationSettingsRequest(BaseModel):
    """Settings form. Missing or empty fields leave the stored value alone."""

    github_token: Optional[str] = None
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None


class IntegrationStatusResponse(BaseModel):
    github_configured: bool
    jira_configured: bool


@router.get("/integration", response_model=IntegrationSettingsResponse)
async def get_integration_settings(
    session: AsyncSession = Depends(get_db),
) -> IntegrationSettingsResponse:
    stored: dict[str, str] = await load_settings(session)
    return IntegrationSettingsResponse(
        github_token=mask_secret(stored.get(GITHUB_TOKEN_KEY)),
        jira_base_url=stored.get(JIRA_BASE_URL_KEY),
        jira_email=stored.get(JIRA_EMAIL_KEY),
        jira_api_token=mask_secret(stored.get(JIRA_API_TOKEN_KEY)),
    )


@router.post("/integration")
async def save_integration_settings(
    request: SaveIntegrationSettingsRequest,
    session: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Upsert every non-empty field, then commit once."""
    await upsert_setting(session, GITHUB_TOKEN_KEY, request.github_token)
    await upsert_setting(session, JIRA_BASE_URL_KEY, request.jira_base_url)
    await upsert_setting(session, JIRA_EMAIL_KEY, request.jira_email)
    await upsert_setting(session, JIRA_API_TOKEN_KEY, request.jira_api_token)
    await session.commit()
    logger.info("Integration settings updated")
    return {"message": "Settings saved successfully"}


@router.get("/integration/status", response_model=IntegrationStatusResponse)
async def get_integration_status(
    session: AsyncSession = Depends(get_db),
) -> IntegrationStatusResponse:
    """Public: lets any client know whether syncing is possible."""
    status: dict[str, bool] = await integration_status(session)
    return IntegrationStatusResponse(**status)
