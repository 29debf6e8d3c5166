"""README summarization through an OpenAI-compatible chat completion API."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx
import structlog

from dandi.config import LLMConfig
from dandi.errors import UpstreamError

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You summarize GitHub repositories from their README. "
    'Reply with a JSON object: {"summary": string, "cool_facts": [string, ...]}.'
)

USER_PROMPT_TEMPLATE = """Summarize this github repository from this README file content.
Provide a clear summary and extract interesting facts.

README Content:
{readme}
"""


@dataclass
class RepoSummary:
    summary: str
    facts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"summary": self.summary, "facts": list(self.facts)}


class Summarizer(ABC):
    """Turns README content into a summary plus a list of facts."""

    @abstractmethod
    async def summarize(self, readme_content: str) -> RepoSummary:
        """Summarize README content.

        Raises:
            UpstreamError: If the model call fails or returns garbage
        """


def parse_summary_payload(content: str) -> RepoSummary:
    """Parse the model's JSON reply.

    Raises:
        ValueError: If the reply is not the expected JSON object
    """
    data = json.loads(content)
    if not isinstance(data, dict) or not isinstance(data.get("summary"), str):
        raise ValueError("Model reply is missing 'summary'")

    facts = data.get("cool_facts", data.get("facts", []))
    if not isinstance(facts, list):
        facts = []
    return RepoSummary(summary=data["summary"], facts=[str(f) for f in facts])


class OpenAISummarizer(Summarizer):
    """Summarizer calling ``{base_url}/chat/completions`` in JSON mode."""

    def __init__(self, client: httpx.AsyncClient, config: LLMConfig) -> None:
        self._client = client
        self._config = config
        self._log = logger.bind(component="summarizer", model=config.model)

    async def summarize(self, readme_content: str) -> RepoSummary:
        if not self._config.api_key:
            self._log.error("summarizer.not_configured")
            raise UpstreamError("Summarization model is not configured")

        readme = readme_content[: self._config.max_readme_chars]
        request_body = {
            "model": self._config.model,
            "temperature": self._config.temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT_TEMPLATE.format(readme=readme)},
            ],
        }

        try:
            response = await self._client.post(
                f"{self._config.base_url}/chat/completions",
                json=request_body,
                headers={"Authorization": f"Bearer {self._config.api_key}"},
            )
        except httpx.HTTPError as exc:
            self._log.error("summarizer.request_failed", error=str(exc))
            raise UpstreamError() from exc

        if response.status_code != 200:
            self._log.error(
                "summarizer.bad_status",
                status=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError()

        try:
            content = response.json()["choices"][0]["message"]["content"]
            summary = parse_summary_payload(content)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            self._log.error("summarizer.bad_reply", error=str(exc))
            raise UpstreamError() from exc

        usage = response.json().get("usage") or {}
        self._log.info(
            "summarizer.done",
            readme_chars=len(readme),
            facts=len(summary.facts),
            total_tokens=usage.get("total_tokens"),
        )
        return summary
