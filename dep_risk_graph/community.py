"""
Repository and community metadata lookup (GitHub REST API).

The contributor count of a repository stands in for its maintainer count.
"""

import os
import re
from datetime import datetime, timezone
from typing import Any, NamedTuple

import httpx
from dotenv import load_dotenv
from rich.console import Console

from dep_risk_graph.config import get_github_api_url, is_verbose_enabled
from dep_risk_graph.http_client import _get_async_http_client

# Load environment variables
load_dotenv()
console = Console(stderr=True)

_GITHUB_URL_PATTERN = re.compile(
    r"github\.com[/:](?P<owner>[A-Za-z0-9_.\-]+)/(?P<repo>[A-Za-z0-9_.\-]+)"
)


class RepositoryReference(NamedTuple):
    owner: str
    repo: str


class RepositoryMetadata(NamedTuple):
    """Community signals for a source repository. Unknown fields are None."""

    stars: int | None = None
    downloads: int | None = None
    maintainers: int | None = None
    last_update: datetime | None = None
    forks: int | None = None
    open_issues: int | None = None
    archived: bool = False
    created_at: datetime | None = None


def parse_repository_url(url: str | None) -> RepositoryReference | None:
    """
    Extract owner and repository name from a GitHub URL.

    Handles https, ssh and ``.git`` suffixed forms. Returns None for
    non-GitHub URLs.
    """
    if not url:
        return None
    match = _GITHUB_URL_PATTERN.search(url)
    if not match:
        return None
    repo = match.group("repo")
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        return None
    return RepositoryReference(match.group("owner"), repo)


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_repository_response(data: dict[str, Any]) -> RepositoryMetadata:
    return RepositoryMetadata(
        stars=data.get("stargazers_count"),
        forks=data.get("forks_count"),
        open_issues=data.get("open_issues_count"),
        last_update=_parse_datetime(data.get("pushed_at")),
        created_at=_parse_datetime(data.get("created_at")),
        archived=bool(data.get("archived", False)),
    )


class GitHubCommunityClient:
    """Fetch repository metadata from GitHub."""

    def __init__(self, token: str | None = None, base_url: str | None = None):
        """
        Args:
            token: GitHub token. Falls back to the GITHUB_TOKEN environment
                variable; anonymous requests are allowed but rate limited.
            base_url: API base URL override.
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        self.base_url = (base_url or get_github_api_url()).rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def count_contributors(self, repo_ref: RepositoryReference) -> int | None:
        """
        Count a repository's contributors with a single request.

        Asks for one contributor per page, so the page number of the ``last``
        link is the total. Returns None when GitHub does not answer with a
        contributor list.
        """
        client = await _get_async_http_client()
        response = await client.get(
            f"{self.base_url}/repos/{repo_ref.owner}/{repo_ref.repo}/contributors",
            params={"per_page": 1, "anon": "true"},
            headers=self._headers(),
        )
        if response.status_code != 200:
            return None

        last = response.links.get("last", {}).get("url")
        if last:
            page = httpx.URL(last).params.get("page")
            if page and page.isdigit():
                return int(page)

        try:
            data = response.json()
        except ValueError:
            return None
        return len(data) if isinstance(data, list) else None

    async def lookup(
        self, repo_ref: RepositoryReference | str
    ) -> RepositoryMetadata | None:
        """
        Fetch metadata for a repository.

        Args:
            repo_ref: A RepositoryReference or a repository URL.

        Returns:
            RepositoryMetadata with ``maintainers`` set to the contributor
            count, or None when the reference is not a GitHub
            repository, the repository does not exist, or the rate limit is hit.

        Raises:
            httpx.HTTPError: On network errors and unexpected HTTP errors.
        """
        if isinstance(repo_ref, str):
            parsed = parse_repository_url(repo_ref)
            if parsed is None:
                return None
            repo_ref = parsed

        client = await _get_async_http_client()
        response = await client.get(
            f"{self.base_url}/repos/{repo_ref.owner}/{repo_ref.repo}",
            headers=self._headers(),
        )
        if response.status_code == 404:
            if is_verbose_enabled():
                console.print(
                    f"[dim]Repository not found: {repo_ref.owner}/{repo_ref.repo}[/dim]"
                )
            return None
        if response.status_code == 403:
            console.print("[yellow]GitHub rate limit exceeded; skipping community data[/yellow]")
            return None
        response.raise_for_status()
        metadata = parse_repository_response(response.json())
        return metadata._replace(maintainers=await self.count_contributors(repo_ref))
