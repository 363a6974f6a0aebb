"""
Profile endpoints.

GET /auth/profile  — current user and profile (Bearer access token)
PUT /auth/profile  — change email, phone, preferences or password (Bearer)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_current_user_id, get_profile_service
from schemas.dto.requests.profile import UpdateProfileRequest
from schemas.dto.responses.auth import MeData
from schemas.dto.responses.common import ApiResponse
from services.profile_service import ProfileService

router = APIRouter(prefix="/auth", tags=["profile"])


@router.get("/profile")
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse[MeData]:
    result = await service.get_profile(user_id)
    return ApiResponse(message="Profile fetched", data=MeData(**result))


@router.put("/profile")
async def update_profile(
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse[MeData]:
    result = await service.update_profile(
        user_id,
        email=body.email,
        phone_number=body.phone_number,
        language=body.language,
        timezone=body.timezone,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return ApiResponse(message="Profile updated", data=MeData(**result))
