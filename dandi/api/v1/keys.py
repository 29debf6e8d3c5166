"""API key management endpoints.

All endpoints are scoped to the authenticated session's email. Keys owned by
other accounts answer 404, never 403, so their existence is not revealed.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from dandi.api.dependencies import AuthDep, KeyLifecycleServiceDep
from dandi.models.api_key import ApiKey

router = APIRouter()


# Request/Response Models


class CreateKeyRequest(BaseModel):
    """Request to create an API key."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    rate_limit: int | None = Field(default=None, alias="rateLimit")


class RenameKeyRequest(BaseModel):
    """Request to rename an API key."""

    name: str


class ApiKeyResponse(BaseModel):
    """API key as listed on the dashboard.

    Note: the secret and owner are intentionally not exposed.
    """

    id: str
    name: str
    masked_secret: str
    usage: int
    rate_limit: int
    remaining: int
    created_at: datetime


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Creation response; the only time the secret is returned."""

    secret: str


class DeleteKeyResponse(BaseModel):
    message: str


def _key_to_response(api_key: ApiKey) -> ApiKeyResponse:
    """Convert ApiKey model to API response."""
    return ApiKeyResponse(
        id=api_key.id,
        name=api_key.name,
        masked_secret=api_key.masked_secret,
        usage=api_key.usage,
        rate_limit=api_key.rate_limit,
        remaining=api_key.remaining,
        created_at=api_key.created_at,
    )


# Endpoints


@router.post("", response_model=ApiKeyCreatedResponse, status_code=201)
async def create_key(
    request: CreateKeyRequest,
    lifecycle: KeyLifecycleServiceDep,
    owner: AuthDep,
) -> ApiKeyCreatedResponse:
    """Create a new API key. The response carries the full secret once."""
    api_key = await lifecycle.create(owner, request.name, request.rate_limit)
    return ApiKeyCreatedResponse(
        **_key_to_response(api_key).model_dump(),
        secret=api_key.secret,
    )


@router.get("", response_model=list[ApiKeyResponse])
async def list_keys(
    lifecycle: KeyLifecycleServiceDep,
    owner: AuthDep,
) -> list[ApiKeyResponse]:
    """List the caller's API keys, newest first."""
    keys = await lifecycle.list(owner)
    return [_key_to_response(k) for k in keys]


@router.get("/{key_id}", response_model=ApiKeyResponse)
async def get_key(
    key_id: str,
    lifecycle: KeyLifecycleServiceDep,
    owner: AuthDep,
) -> ApiKeyResponse:
    """Get one of the caller's API keys."""
    api_key = await lifecycle.get(owner, key_id)
    return _key_to_response(api_key)


@router.patch("/{key_id}", response_model=ApiKeyResponse)
async def rename_key(
    key_id: str,
    request: RenameKeyRequest,
    lifecycle: KeyLifecycleServiceDep,
    owner: AuthDep,
) -> ApiKeyResponse:
    """Rename one of the caller's API keys."""
    api_key = await lifecycle.rename(owner, key_id, request.name)
    return _key_to_response(api_key)


@router.delete("/{key_id}", response_model=DeleteKeyResponse)
async def delete_key(
    key_id: str,
    lifecycle: KeyLifecycleServiceDep,
    owner: AuthDep,
) -> DeleteKeyResponse:
    """Delete one of the caller's API keys."""
    await lifecycle.delete(owner, key_id)
    return DeleteKeyResponse(message="API key deleted successfully")
