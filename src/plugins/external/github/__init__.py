"""GitHub API client and connector."""

from plugins.external.github.client import (
    GitHubAPIError,
    GitHubClient,
    is_not_found,
    new_client,
)
from plugins.external.github.connector import GitHubConnector

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "GitHubConnector",
    "is_not_found",
    "new_client",
]
