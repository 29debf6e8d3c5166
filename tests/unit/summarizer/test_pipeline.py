"""Tests for SummarizationPipeline."""

from __future__ import annotations

import pytest

from dandi.errors import UpstreamError
from dandi.services.summarizer import SummarizationPipeline
from tests.fakes import FakeGitHubClient, FakeSummarizer, upstream_failure


class TestSummarizationPipeline:
    async def test_run(self):
        github = FakeGitHubClient()
        summarizer = FakeSummarizer()

        result = await SummarizationPipeline(github, summarizer).run("https://github.com/octo/hello")

        assert result.repo.stars == 42
        assert result.summary.summary == "A friendly repository."
        assert summarizer.calls == ["# Hello\nA friendly repository."]

    async def test_github_failure_skips_summarizer(self):
        summarizer = FakeSummarizer()
        pipeline = SummarizationPipeline(FakeGitHubClient(error=upstream_failure()), summarizer)

        with pytest.raises(UpstreamError):
            await pipeline.run("https://github.com/octo/hello")

        assert summarizer.calls == []
