"""GitHub repository data fetcher.

Collects the README plus the metadata shown next to a summary: star count,
latest release tag, homepage and license.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx
import structlog

from dandi.config import GitHubConfig
from dandi.errors import UpstreamError

logger = structlog.get_logger()

_GITHUB_HOSTS = {"github.com", "www.github.com"}


@dataclass
class LicenseInfo:
    name: str | None = None
    url: str | None = None


@dataclass
class RepoData:
    """Repository content and metadata."""

    owner: str
    repo: str
    readme_content: str
    stars: int = 0
    latest_version: str | None = None
    website_url: str | None = None
    license: LicenseInfo = field(default_factory=LicenseInfo)


def parse_github_url(github_url: str) -> tuple[str, str]:
    """Split a repository URL into (owner, repo).

    Accepts ``https://github.com/<owner>/<repo>`` with optional trailing
    path segments, trailing slash or ``.git`` suffix.

    Raises:
        ValueError: If the URL does not point at a GitHub repository
    """
    parsed = urlparse(github_url.strip())
    if parsed.scheme not in ("http", "https") or parsed.hostname not in _GITHUB_HOSTS:
        raise ValueError(f"Not a GitHub URL: {github_url}")

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise ValueError(f"GitHub URL must include owner and repository: {github_url}")

    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        raise ValueError(f"GitHub URL must include owner and repository: {github_url}")
    return owner, repo


class GitHubClient:
    """Reads repository data through the GitHub REST API and raw content host."""

    def __init__(self, client: httpx.AsyncClient, config: GitHubConfig) -> None:
        self._client = client
        self._config = config
        self._log = logger.bind(component="github")

    def _api_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self._config.token:
            headers["Authorization"] = f"token {self._config.token}"
        return headers

    async def _fetch_metadata(self, owner: str, repo: str) -> dict:
        url = f"{self._config.api_url}/repos/{owner}/{repo}"
        response = await self._client.get(url, headers=self._api_headers())
        if response.status_code != 200:
            self._log.warning(
                "github.metadata_failed",
                owner=owner,
                repo=repo,
                status=response.status_code,
            )
            raise UpstreamError("Failed to fetch repository metadata")
        return response.json()

    async def _fetch_latest_version(self, owner: str, repo: str) -> str | None:
        url = f"{self._config.api_url}/repos/{owner}/{repo}/releases/latest"
        response = await self._client.get(url, headers=self._api_headers())
        if response.status_code != 200:
            # Repositories without releases are common
            return None
        return response.json().get("tag_name")

    async def _fetch_readme(self, owner: str, repo: str) -> str:
        for branch in self._config.readme_branches:
            url = f"{self._config.raw_url}/{owner}/{repo}/{branch}/README.md"
            response = await self._client.get(url)
            if response.status_code == 200:
                return response.text

        self._log.warning(
            "github.readme_not_found",
            owner=owner,
            repo=repo,
            branches=self._config.readme_branches,
        )
        raise UpstreamError(
            f"README not found in {' or '.join(self._config.readme_branches)} branch"
        )

    async def fetch_repo(self, github_url: str) -> RepoData:
        """Fetch README and metadata for a repository URL.

        Raises:
            UpstreamError: If metadata or README cannot be fetched
        """
        try:
            owner, repo = parse_github_url(github_url)
        except ValueError as exc:
            raise UpstreamError(str(exc)) from exc

        try:
            metadata = await self._fetch_metadata(owner, repo)
            latest_version = await self._fetch_latest_version(owner, repo)
            readme_content = await self._fetch_readme(owner, repo)
        except httpx.HTTPError as exc:
            self._log.error("github.request_failed", owner=owner, repo=repo, error=str(exc))
            raise UpstreamError("Failed to reach GitHub") from exc

        license_data = metadata.get("license") or {}
        return RepoData(
            owner=owner,
            repo=repo,
            readme_content=readme_content,
            stars=metadata.get("stargazers_count", 0),
            latest_version=latest_version,
            website_url=metadata.get("homepage") or None,
            license=LicenseInfo(
                name=license_data.get("name") or None,
                url=license_data.get("url") or None,
            ),
        )
