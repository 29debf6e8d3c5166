"""SQLModel data models."""

from dandi.models.api_key import ApiKey

__all__ = [
    "ApiKey",
]
