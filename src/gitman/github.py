"""GitHub REST API access: repositories and organization memberships."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

from ._version import __version__
from .errors import GitmanError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_URL_ENV = "GITMAN_API_URL"
TOKEN_ENV_VARS = ("GITMAN_GITHUB_TOKEN", "GH_TOKEN", "GITHUB_TOKEN")
PAGE_SIZE = 100
TOKEN_HELP_URL = "https://github.com/settings/tokens"


class GitHubError(GitmanError):
    """A GitHub API request failed (network, authentication or bad response)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RemoteRepository:
    """A repository as listed by the GitHub API."""

    name: str
    ssh_url: str = ""
    clone_url: str = ""

    def clone_address(self, protocol: str = "ssh") -> str:
        if protocol == "https":
            return self.clone_url
        return self.ssh_url

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RemoteRepository:
        return cls(
            name=data["name"],
            ssh_url=data.get("ssh_url") or "",
            clone_url=data.get("clone_url") or "",
        )


def resolve_token(stored: str | None = None) -> str | None:
    """Return the GitHub token to use, or None when remote listing is off.

    Environment variables take precedence over the stored token.
    """
    for var in TOKEN_ENV_VARS:
        value = os.environ.get(var, "").strip()
        if value:
            return value
    return (stored or "").strip() or None


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message", "") or response.reason_phrase
    except (ValueError, AttributeError):
        return response.text[:200]


class GitHubClient:
    """Minimal authenticated client for the endpoints gitman needs."""

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
    ):
        # Header values must be ASCII (pasted tokens may carry zero-width spaces)
        if not token.isascii():
            raise GitHubError("Invalid GitHub token: it contains non-ASCII characters")
        self.client = httpx.Client(
            base_url=base_url or os.environ.get(API_URL_ENV, DEFAULT_API_URL),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": f"gitman/{__version__}",
            },
            transport=transport,
            timeout=timeout,
            follow_redirects=True,
        )

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        logger.debug("GET %s %s", url, params or "")
        try:
            response = self.client.get(url, params=params)
        except httpx.HTTPError as e:
            raise GitHubError(f"Error connecting to GitHub: {e}") from e
        if response.status_code >= 400:
            raise GitHubError(
                f"GitHub API returned {response.status_code} for {url}: "
                f"{_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    def _get_list(self, path: str, params: dict[str, Any] | None = None) -> list[dict]:
        """GET a list endpoint, following ``Link: rel="next"`` pagination."""
        items: list[dict] = []
        url: str | None = path
        page_params: dict[str, Any] | None = {**(params or {}), "per_page": PAGE_SIZE}
        while url:
            response = self._get(url, params=page_params)
            try:
                page = response.json()
            except ValueError as e:
                raise GitHubError(f"Failed to parse GitHub response for {url}: {e}") from e
            if not isinstance(page, list):
                raise GitHubError(f"Unexpected GitHub response for {url}: expected a list")
            items.extend(page)
            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            page_params = None
        return items

    def list_repositories(self, org: str | None = None) -> list[RemoteRepository]:
        """List the organization's repositories, or those the user owns."""
        if org:
            data = self._get_list(f"/orgs/{org}/repos")
        else:
            data = self._get_list("/user/repos", {"affiliation": "owner"})
        try:
            return [RemoteRepository.from_api(item) for item in data]
        except (KeyError, TypeError) as e:
            raise GitHubError(f"Malformed repository entry in GitHub response: {e}") from e

    def list_organizations(self) -> list[str]:
        """Logins of the organizations the authenticated user belongs to."""
        data = self._get_list("/user/memberships/orgs")
        return [item["organization"]["login"] for item in data if item.get("organization")]
