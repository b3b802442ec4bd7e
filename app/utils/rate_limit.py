"""
Rate limiting utilities for API endpoints.
Uses slowapi for per-client admission control on CMS write endpoints.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_client_identifier(request: Request) -> str:
    """
    Get client identifier for rate limiting.
    Uses forwarded IP if behind proxy, otherwise remote address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in chain is the original client
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


# Window counters live in the limiter's storage backend and expire lazily;
# point storage_uri at Redis to share limits across workers.
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=["100/hour"],
    storage_uri="memory://"
)


RATE_LIMITS = {
    "upload": "20/hour",
    "delete": "30/hour",
    "reorder": "60/hour",
    "general": "100/hour",
}
