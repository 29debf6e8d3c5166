"""API key secret generation and masking.

Secret format: ``dandi-<9 base36 chars>-<9 base36 chars>``.
The masked form is a fixed-width display string that does not reveal the
secret's length.
"""

from __future__ import annotations

import secrets
import string

SECRET_PREFIX = "dandi-"
SEGMENT_LENGTH = 9
BASE36_ALPHABET = string.digits + string.ascii_lowercase

MASK_VISIBLE_CHARS = 6
MASK_CHAR = "*"
MASK_WIDTH = 25


def _random_segment(length: int = SEGMENT_LENGTH) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def generate_secret() -> str:
    """Generate a new unguessable key secret."""
    return f"{SECRET_PREFIX}{_random_segment()}-{_random_segment()}"


def mask_secret(secret: str) -> str:
    """Return the first 6 characters followed by exactly 25 mask characters."""
    return f"{secret[:MASK_VISIBLE_CHARS]}{MASK_CHAR * MASK_WIDTH}"
