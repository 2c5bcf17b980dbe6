"""
Maps external commit authors to local users.

A commit author matches a user when the author email equals the user's
email (case-insensitive) or the GitHub handle equals the user's
``github_username``. The first active match by id wins; no match is not an
error, the commit's user link simply stays empty.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User

logger = logging.getLogger(__name__)


class IdentityMatcher:
    """Resolves (email, handle) pairs to user ids.

    Build one per sync run; lookups are memoised for the lifetime of the
    instance only.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._cache: dict[tuple[str, str], Optional[int]] = {}

    async def match(
        self, author_email: Optional[str], author_handle: Optional[str]
    ) -> Optional[int]:
        email: str = (author_email or "").strip().lower()
        handle: str = (author_handle or "").strip()
        if not email and not handle:
            return None

        cache_key: tuple[str, str] = (email, handle)
        if cache_key in self._cache:
            return self._cache[cache_key]

        conditions = []
        if email:
            conditions.append(func.lower(User.email) == email)
        if handle:
            conditions.append(User.github_username == handle)

        result = await self._session.execute(
            select(User.id)
            .where(User.active(), or_(*conditions))
            .order_by(User.id)
            .limit(1)
        )
        user_id: Optional[int] = result.scalar_one_or_none()
        if user_id is None:
            logger.debug("No local user for commit author %s / %s", email, handle)

        self._cache[cache_key] = user_id
        return user_id
