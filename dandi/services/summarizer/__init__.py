"""Repository summarization collaborators."""

from dandi.services.summarizer.github import (
    GitHubClient,
    LicenseInfo,
    RepoData,
    parse_github_url,
)
from dandi.services.summarizer.llm import (
    OpenAISummarizer,
    RepoSummary,
    Summarizer,
    parse_summary_payload,
)
from dandi.services.summarizer.pipeline import SummarizationPipeline, SummaryResult

__all__ = [
    "GitHubClient",
    "LicenseInfo",
    "RepoData",
    "parse_github_url",
    "OpenAISummarizer",
    "RepoSummary",
    "Summarizer",
    "parse_summary_payload",
    "SummarizationPipeline",
    "SummaryResult",
]
