"""
Base connector class shared by the GitHub and Jira connectors.

Connectors are constructed with already-resolved credentials (see
services/credentials.py) and talk HTTP through httpx. They never raise on
transport problems: failures are logged, appended to ``errors`` and the
caller receives whatever was collected.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Optional

import httpx

from config import settings


logger = logging.getLogger(__name__)


class BaseConnector:
    """Common HTTP plumbing and failure bookkeeping for connectors."""

    # Override in subclasses
    source_system: str = "unknown"

    def __init__(
        self,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            transport: Optional httpx transport (tests pass a MockTransport)
            timeout: Request timeout in seconds, defaults to EXTERNAL_HTTP_TIMEOUT
        """
        self._transport = transport
        self._timeout: float = timeout if timeout is not None else settings.EXTERNAL_HTTP_TIMEOUT
        # Human-readable descriptions of every degraded fetch
        self.errors: list[str] = []

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        """Build an AsyncClient bound to this connector's transport."""
        return httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            **kwargs,
        )

    def record_error(self, error: str) -> None:
        """Remember a degraded fetch so the sync result can report it."""
        self.errors.append(error[:500])  # Truncate long errors

    @staticmethod
    def _parse_date(date_str: Any) -> datetime | None:
        """Parse an ISO-8601 timestamp (``Z`` or offset) to a naive UTC datetime."""
        if not date_str or not isinstance(date_str, str):
            return None
        cleaned: str = date_str.replace("Z", "+00:00")
        # Jira uses +0000 offsets without a colon
        if len(cleaned) > 5 and cleaned[-5] in "+-" and cleaned[-3] != ":":
            cleaned = f"{cleaned[:-2]}:{cleaned[-2:]}"
        try:
            parsed: datetime = datetime.fromisoformat(cleaned)
        except ValueError:
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed


# ── Tolerant JSON field access ───────────────────────────────────────────


def json_object(value: Any) -> dict[str, Any]:
    """The value if it is a JSON object, else an empty dict."""
    return value if isinstance(value, dict) else {}


def json_text(value: Any) -> str:
    """Scalar JSON value as text; objects, lists and null become ''."""
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def json_count(value: Any) -> int:
    """Non-negative JSON count; anything unparseable counts as 0."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        return 0
