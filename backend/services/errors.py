"""Errors raised by the integration sync services before any external call."""


class IntegrationError(RuntimeError):
    """Base class for caller-visible integration failures."""


class GroupNotFoundError(IntegrationError):
    """Raised when the target group does not exist (or was soft-deleted)."""

    def __init__(self, group_id: int) -> None:
        super().__init__(f"Group {group_id} not found")
        self.group_id = group_id


class IntegrationNotConfiguredError(IntegrationError):
    """Raised when a group has no repository URL / Jira project key."""


class InvalidRepositoryUrlError(IntegrationError):
    """Raised when a repository URL cannot be parsed as owner/repo."""
