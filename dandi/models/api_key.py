"""API Key data model.

One row per key. ``secret`` is the bearer token presented on metered calls;
``masked_secret`` is the display form computed once at creation.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from dandi.utils.datetime import utcnow


class ApiKey(SQLModel, table=True):
    """API key owned by one account and metered against ``rate_limit``."""

    __tablename__ = "api_keys"

    id: str = Field(primary_key=True)
    owner_email: str = Field(index=True)
    name: str
    secret: str = Field(unique=True, index=True)
    masked_secret: str
    usage: int = Field(default=0)
    rate_limit: int = Field(default=1000)
    created_at: datetime = Field(default_factory=utcnow, index=True)

    @property
    def remaining(self) -> int:
        """Calls left before the key is rejected."""
        return max(self.rate_limit - self.usage, 0)
