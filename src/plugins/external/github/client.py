"""
GitHub REST client - Teams and team memberships.

Thin async wrappers around the GitHub REST API endpoints the provider uses.
"""

import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubAPIError(Exception):
    """Raised when the GitHub API returns a non-2xx response."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"GitHub API returned {status}: {message}")


def is_not_found(err: Exception) -> bool:
    """Return True if the error is a GitHub 404."""
    return isinstance(err, GitHubAPIError) and err.status == 404


def _compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset optional fields from a request body."""
    return {k: v for k, v in payload.items() if v is not None}


class GitHubClient:
    """Async client for the GitHub teams API."""

    def __init__(
        self,
        token: str,
        api_base_url: str = DEFAULT_API_URL,
        timeout: int = 30,
    ):
        self.github_token = token
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"GitHubClient(api_base_url={self.api_base_url!r})"

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Send a request and return the decoded JSON body, if any."""
        url = f"{self.api_base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method, url, headers=self._get_headers(), json=payload
            ) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    logger.debug(
                        f"{method} {path} failed: {response.status} - {error_text}"
                    )
                    raise GitHubAPIError(response.status, error_text)
                if response.status == 204:
                    return None
                return await response.json()

    # Teams

    async def get_team_by_slug(self, org: str, slug: str) -> Dict[str, Any]:
        return await self._request("GET", f"/orgs/{org}/teams/{slug}")

    async def create_team(
        self,
        org: str,
        name: str,
        description: Optional[str] = None,
        privacy: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = _compact(
            {"name": name, "description": description, "privacy": privacy}
        )
        return await self._request("POST", f"/orgs/{org}/teams", payload)

    async def edit_team_by_slug(
        self,
        org: str,
        slug: str,
        name: str,
        description: Optional[str] = None,
        privacy: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = _compact(
            {"name": name, "description": description, "privacy": privacy}
        )
        return await self._request("PATCH", f"/orgs/{org}/teams/{slug}", payload)

    async def delete_team_by_slug(self, org: str, slug: str) -> None:
        await self._request("DELETE", f"/orgs/{org}/teams/{slug}")

    # Team memberships

    async def get_team_membership_by_slug(
        self, org: str, slug: str, user: str
    ) -> Dict[str, Any]:
        return await self._request(
            "GET", f"/orgs/{org}/teams/{slug}/memberships/{user}"
        )

    async def add_team_membership_by_slug(
        self, org: str, slug: str, user: str, role: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/orgs/{org}/teams/{slug}/memberships/{user}",
            _compact({"role": role}),
        )

    async def remove_team_membership_by_slug(
        self, org: str, slug: str, user: str
    ) -> None:
        await self._request("DELETE", f"/orgs/{org}/teams/{slug}/memberships/{user}")


def new_client(
    token: str, api_base_url: str = DEFAULT_API_URL, timeout: int = 30
) -> GitHubClient:
    """
    Create a GitHub client authenticated with a token.

    Raises:
        ValueError: If the token is empty.
    """
    token = token.strip()
    if not token:
        raise ValueError("GitHub token is empty")
    return GitHubClient(token, api_base_url=api_base_url, timeout=timeout)
