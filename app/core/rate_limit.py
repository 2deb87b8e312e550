"""HTTP-side helpers for rate limiting.

- Resolve the client identity the limiter keys on.
- Render X-RateLimit-* / Retry-After headers from an admission snapshot.

Identity resolution order:
- first address of X-Forwarded-For (set by the reverse proxy),
- X-Real-IP,
- the socket peer address,
- "unknown".
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request

from app.core.config import settings

UNKNOWN_CLIENT = "unknown"


def resolve_client_identity(request: Request) -> str:
    """Return the identity used for admission control.

    Args:
        request: FastAPI request.

    Returns:
        str: Client address, or "unknown" when none is available.
    """

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def format_reset(reset_at_ms: int) -> str:
    """Render an epoch-milliseconds reset time as ISO-8601 UTC."""

    moment = datetime.fromtimestamp(reset_at_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def rate_limit_headers(
    *,
    limit: int,
    remaining: int,
    reset_at: int,
    retry_after: int | None = None,
) -> dict[str, str]:
    """Build rate limit headers, or nothing when headers are disabled."""

    if not settings.app.rate_limit_include_headers:
        return {}

    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": format_reset(reset_at),
    }
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return headers
