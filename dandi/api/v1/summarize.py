"""Metered summarization endpoint and non-metered key validation.

``POST /summarize`` is the only call that consumes key usage. Usage is
charged by the gate before GitHub or the model is contacted and is not
refunded if they fail.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from dandi.api.dependencies import RateLimitGateDep, SummarizationPipelineDep
from dandi.errors import UpstreamError
from dandi.services.summarizer import parse_github_url

logger = structlog.get_logger()

router = APIRouter()


class SummarizeRequest(BaseModel):
    """Request to summarize a GitHub repository."""

    model_config = ConfigDict(populate_by_name=True)

    github_url: str = Field(alias="githubUrl")

    @field_validator("github_url")
    @classmethod
    def _check_github_url(cls, value: str) -> str:
        parse_github_url(value)
        return value.strip()


class ValidateKeyRequest(BaseModel):
    """Request to check whether an API key exists."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(default=None, alias="apiKey")


@router.post("/summarize")
async def summarize_repository(
    request: SummarizeRequest,
    gate: RateLimitGateDep,
    pipeline: SummarizationPipelineDep,
    x_api_key: str | None = Header(None, alias="x-api-key"),
) -> JSONResponse:
    """Summarize a GitHub repository, charging one unit of key usage.

    Rejections answer 401 (missing/invalid key), 429 (limit exceeded) or
    500 (storage) with ``{error, usage, limit}``.
    """
    decision = await gate.check_and_consume(x_api_key)
    rate_limit_headers = decision.headers()

    if not decision.is_admitted:
        error = decision.error
        error.headers.update(rate_limit_headers)
        raise error

    try:
        result = await pipeline.run(request.github_url)
    except UpstreamError as exc:
        logger.warning(
            "summarize.upstream_failed",
            key_id=decision.key_id,
            github_url=request.github_url,
            error=exc.message,
        )
        exc.headers.update(rate_limit_headers)
        raise

    repo = result.repo
    return JSONResponse(
        status_code=200,
        content={
            "valid": True,
            "summary": result.summary.to_dict(),
            "githubUrl": request.github_url,
            "stars": repo.stars,
            "latestVersion": repo.latest_version,
            "websiteUrl": repo.website_url,
            "license": {"name": repo.license.name, "url": repo.license.url},
        },
        headers=rate_limit_headers,
    )


@router.post("/validate")
async def validate_key(
    request: ValidateKeyRequest,
    gate: RateLimitGateDep,
) -> JSONResponse:
    """Check that an API key exists. Does not consume usage."""
    valid = await gate.validate(request.api_key)
    return JSONResponse(
        status_code=200 if valid else 401,
        content={"valid": valid},
    )
