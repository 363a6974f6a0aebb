"""
Client IP resolution for FastAPI requests.

The login flow records the caller's address as ``last_login_ip``; behind a
CDN or reverse proxy the socket peer is the proxy, so forwarding headers
are consulted first.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

# Highest-trust header first
_FORWARDING_HEADERS = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


def get_client_ip(request: Request) -> Optional[str]:
    """Return the originating client IP, or None when it cannot be determined.

    ``X-Forwarded-For`` may hold a chain; only the first (client) entry is
    used.
    """
    for header in _FORWARDING_HEADERS:
        value = request.headers.get(header)
        if value:
            candidate = value.split(",")[0].strip()
            if candidate:
                return candidate
    return request.client.host if request.client else None
