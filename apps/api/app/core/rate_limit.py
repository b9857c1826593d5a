"""Rate limiting configuration for the CRM API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.config import settings

logger = logging.getLogger(__name__)

# Configure rate limiter with Redis for multi-worker support
# Falls back to in-memory if Redis is not available (dev/test mode)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)


def get_client_address(request: Request) -> str:
    """Caller address, honoring X-Forwarded-For only behind a trusted proxy."""
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return get_remote_address(request)


def public_form_rate_key(request: Request) -> str:
    """Budget key for public form endpoints: (org slug, caller address)."""
    org_slug = request.path_params.get("org_slug", "-")
    return f"public:{org_slug}:{get_client_address(request)}"


def _build_limiter(storage_uri: str) -> Limiter:
    return Limiter(
        key_func=get_client_address,
        storage_uri=storage_uri,
        default_limits=DEFAULT_LIMITS,
    )


if IS_TESTING:
    # Use in-memory storage for tests (no Redis dependency)
    limiter = _build_limiter("memory://")
else:
    # Try Redis, fall back to memory if connection fails
    try:
        import redis

        # Test connection upfront
        r = redis.from_url(REDIS_URL, socket_connect_timeout=1)
        r.ping()
        limiter = _build_limiter(REDIS_URL)
    except Exception as e:
        logger.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        limiter = _build_limiter("memory://")
