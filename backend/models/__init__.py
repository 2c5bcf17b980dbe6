"""Database models package."""
from models.database import Base, get_db, get_session, close_db, get_pool_status, get_engine
from models.user import User, UserRole
from models.group import Group
from models.github_commit import GitHubCommit
from models.requirement import Requirement
from models.project_task import ProjectTask
from models.integration_setting import IntegrationSetting

# (table, column) -> ON DELETE action enforced by the database.
# Soft-deleted rows are filtered at each read site with Model.active().
DELETION_POLICIES: dict[tuple[str, str], str] = {
    ("users", "group_id"): "SET NULL",
    ("groups", "leader_id"): "SET NULL",
    ("groups", "lecturer_id"): "SET NULL",
    ("github_commits", "group_id"): "CASCADE",
    ("github_commits", "user_id"): "SET NULL",
    ("requirements", "group_id"): "CASCADE",
    ("project_tasks", "group_id"): "CASCADE",
    ("project_tasks", "requirement_id"): "SET NULL",
    ("project_tasks", "assignee_id"): "SET NULL",
}

__all__ = [
    "Base",
    "get_db",
    "get_session",
    "close_db",
    "get_pool_status",
    "get_engine",
    "User",
    "UserRole",
    "Group",
    "GitHubCommit",
    "Requirement",
    "ProjectTask",
    "IntegrationSetting",
    "DELETION_POLICIES",
]
