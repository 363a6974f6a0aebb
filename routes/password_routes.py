"""
Password endpoints.

POST /auth/password/forgot       — request a reset code (generic reply, sent after responding)
POST /auth/password/verify-code  — check a reset code, returns a proof token
POST /auth/password/reset        — set a new password with a reset code
POST /auth/password/change       — change password (Bearer access token)
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends

from dependencies import (
    enforce_auth_rate_limit,
    get_current_user_id,
    get_password_service,
)
from schemas.dto.requests.password import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    VerifyResetCodeRequest,
)
from schemas.dto.responses.auth import ResetProofData
from schemas.dto.responses.common import ApiResponse
from services.password_service import PasswordService

router = APIRouter(prefix="/auth/password", tags=["password"])


@router.post("/forgot", dependencies=[Depends(enforce_auth_rate_limit)])
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    service: PasswordService = Depends(get_password_service),
) -> ApiResponse[None]:
    message = await service.request_password_reset(
        body.email, defer=background_tasks.add_task
    )
    return ApiResponse(message=message)


@router.post("/verify-code", dependencies=[Depends(enforce_auth_rate_limit)])
async def verify_reset_code(
    body: VerifyResetCodeRequest,
    service: PasswordService = Depends(get_password_service),
) -> ApiResponse[ResetProofData]:
    proof_token = await service.verify_reset_code(body.email, body.code)
    return ApiResponse(
        message="Code verified", data=ResetProofData(proof_token=proof_token)
    )


@router.post("/reset", dependencies=[Depends(enforce_auth_rate_limit)])
async def reset_password(
    body: ResetPasswordRequest,
    service: PasswordService = Depends(get_password_service),
) -> ApiResponse[None]:
    await service.reset_password(body.email, body.code, body.new_password)
    return ApiResponse(message="Password has been reset. You can now log in.")


@router.post("/change")
async def change_password(
    body: ChangePasswordRequest,
    user_id: str = Depends(get_current_user_id),
    service: PasswordService = Depends(get_password_service),
) -> ApiResponse[None]:
    await service.change_password(user_id, body.current_password, body.new_password)
    return ApiResponse(message="Password changed")
