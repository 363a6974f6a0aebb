"""
FastAPI dependency providers.

Services are built once in the app lifespan and stored on app.state; the
providers here only hand them out, so tests can swap in fakes by setting
app.state attributes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from errors import AuthenticationError, RateLimitError
from infrastructure.cache.rate_limiter import RateLimit
from services.auth_service import AuthService
from services.password_service import PasswordService
from services.profile_service import ProfileService
from services.registration_service import RegistrationService
from services.token_service import TokenService
from shared.ip_utils import get_client_ip
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_password_service(request: Request) -> PasswordService:
    return request.app.state.password_service


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


async def enforce_auth_rate_limit(request: Request) -> None:
    """Per-client-IP throttle shared by the public auth endpoints.

    Raises:
        RateLimitError: the caller used up the window.
    """
    limit: RateLimit = request.app.state.auth_rate_limit
    client_ip = get_client_ip(request) or "unknown"
    if await limit.hit(client_ip):
        return
    retry_after = await limit.retry_after(client_ip)
    log.warning(
        "auth_rate_limited", path=request.url.path, ip_hash=hash_ip(client_ip)
    )
    raise RateLimitError(
        "Too many authentication attempts. Please try again later.",
        details={"retry_after_seconds": retry_after} if retry_after else None,
    )


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    """Verified access-token claims for the caller.

    Raises:
        AuthenticationError: header missing, not Bearer, or token rejected.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authentication required")
    return tokens.verify_access_token(credentials.credentials)


async def get_current_user_id(claims: dict = Depends(get_current_claims)) -> str:
    return claims["sub"]


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[str]:
    """Caller's user id when a valid access token is sent, else None."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    try:
        return tokens.verify_access_token(credentials.credentials)["sub"]
    except AuthenticationError:
        return None
