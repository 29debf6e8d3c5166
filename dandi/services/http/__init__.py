"""HTTP client service package.

Provides a shared HTTP client with connection pooling for outbound calls.
"""

from dandi.services.http.client import (
    HTTPClientManager,
    get_http_client,
    http_client_manager,
)

__all__ = [
    "HTTPClientManager",
    "get_http_client",
    "http_client_manager",
]
