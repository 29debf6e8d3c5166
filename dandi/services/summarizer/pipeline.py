"""SummarizationPipeline - GitHub fetch followed by README summarization."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from dandi.services.summarizer.github import GitHubClient, RepoData
from dandi.services.summarizer.llm import RepoSummary, Summarizer

logger = structlog.get_logger()


@dataclass
class SummaryResult:
    repo: RepoData
    summary: RepoSummary


class SummarizationPipeline:
    """Runs the expensive downstream work for an admitted metered call."""

    def __init__(self, github: GitHubClient, summarizer: Summarizer) -> None:
        self._github = github
        self._summarizer = summarizer

    async def run(self, github_url: str) -> SummaryResult:
        """Fetch the repository and summarize its README.

        Raises:
            UpstreamError: If either step fails
        """
        repo = await self._github.fetch_repo(github_url)
        summary = await self._summarizer.summarize(repo.readme_content)
        logger.info(
            "pipeline.done",
            owner=repo.owner,
            repo=repo.repo,
            stars=repo.stars,
        )
        return SummaryResult(repo=repo, summary=summary)
