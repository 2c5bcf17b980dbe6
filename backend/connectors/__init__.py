"""Data connectors package."""
from connectors.base import BaseConnector
from connectors.github import GitHubConnector, parse_repo_url
from connectors.jira import JiraConnector

__all__ = [
    "BaseConnector",
    "GitHubConnector",
    "JiraConnector",
    "parse_repo_url",
]
