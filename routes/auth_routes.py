"""
Session endpoints.

POST /auth/login    — email + password, returns user, profile and tokens
POST /auth/refresh  — exchange a refresh token for a new access token
POST /auth/logout   — acknowledge logout (tokens are discarded client-side)
GET  /auth/me       — current user and profile (Bearer access token)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from dependencies import (
    enforce_auth_rate_limit,
    get_auth_service,
    get_current_user_id,
    get_optional_user_id,
)
from schemas.dto.requests.auth import LoginRequest, RefreshRequest
from schemas.dto.responses.auth import AccessTokenData, AuthenticatedData, MeData
from schemas.dto.responses.common import ApiResponse
from services.auth_service import AuthService
from shared.ip_utils import get_client_ip

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", dependencies=[Depends(enforce_auth_rate_limit)])
async def login(
    body: LoginRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthenticatedData]:
    result = await service.login(body.email, body.password, get_client_ip(request))
    return ApiResponse(
        message="Login successful",
        data=AuthenticatedData(
            user=result.user,
            profile=result.profile,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ),
    )


@router.post("/refresh")
async def refresh(
    body: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AccessTokenData]:
    access_token = await service.refresh_access_token(body.refresh_token)
    return ApiResponse(data=AccessTokenData(access_token=access_token))


@router.post("/logout")
async def logout(
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    await service.logout(user_id)
    return ApiResponse(message="Logout successful")


@router.get("/me")
async def me(
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[MeData]:
    result = await service.get_me(user_id)
    return ApiResponse(data=MeData(**result))
