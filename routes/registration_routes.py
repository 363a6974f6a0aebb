"""
Registration endpoints.

POST /auth/register/step1  — contact details + password, sends a code
POST /auth/register/step2  — business location
POST /auth/register/step3  — business details, sends a fresh code
POST /auth/verify          — step 4: verify the code, create the account
POST /auth/verify/resend   — rotate the registration code
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import enforce_auth_rate_limit, get_registration_service
from schemas.dto.requests.registration import (
    RegisterStep1Request,
    RegisterStep2Request,
    RegisterStep3Request,
    ResendCodeRequest,
    VerifyRegistrationRequest,
)
from schemas.dto.responses.auth import (
    AuthenticatedData,
    CodeSentData,
    RegistrationStartedData,
    RegistrationStepData,
)
from schemas.dto.responses.common import ApiResponse
from services.registration_service import RegistrationService

router = APIRouter(prefix="/auth", tags=["registration"])


@router.post(
    "/register/step1",
    status_code=201,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def register_step1(
    body: RegisterStep1Request,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[RegistrationStartedData]:
    result = await service.register_step1(
        body.full_name, body.email, body.phone_number, body.password
    )
    message = "Registration started. Enter the verification code sent to you."
    if not result.verification_sent:
        message = "Registration started. We could not send a code yet; use resend."
    return ApiResponse(
        message=message,
        data=RegistrationStartedData(
            session_id=result.session_id,
            expires_at=result.expires_at,
            email=result.email,
            phone_number=result.phone_number,
            next_step=result.next_step,
            requires_verification=result.requires_verification,
            verification_sent=result.verification_sent,
        ),
    )


@router.post("/register/step2")
async def register_step2(
    body: RegisterStep2Request,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[RegistrationStepData]:
    result = await service.register_step2(
        body.session_id,
        body.address,
        body.street,
        body.state,
        body.location,
        body.coordinates,
    )
    return ApiResponse(
        message="Business location saved",
        data=RegistrationStepData(
            session_id=result.session_id,
            step_completed=result.step_completed,
            next_step=result.next_step,
        ),
    )


@router.post("/register/step3")
async def register_step3(
    body: RegisterStep3Request,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[RegistrationStepData]:
    result = await service.register_step3(
        body.session_id,
        body.company_legal_name,
        body.trade_license_number,
        body.emirates_id_url,
        body.vat_certification,
    )
    return ApiResponse(
        message="Business details saved. Enter the verification code to finish.",
        data=RegistrationStepData(
            session_id=result.session_id,
            step_completed=result.step_completed,
            next_step=result.next_step,
            verification_sent=result.verification_sent,
        ),
    )


@router.post("/verify", dependencies=[Depends(enforce_auth_rate_limit)])
async def verify_registration(
    body: VerifyRegistrationRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[AuthenticatedData]:
    result = await service.verify_registration(
        body.code,
        email=body.email,
        phone_number=body.phone_number,
        session_id=body.session_id,
    )
    return ApiResponse(
        message="Registration complete",
        data=AuthenticatedData(
            user=result.user,
            profile=result.profile,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ),
    )


@router.post("/verify/resend", dependencies=[Depends(enforce_auth_rate_limit)])
async def resend_code(
    body: ResendCodeRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[CodeSentData]:
    result = await service.resend_code(email=body.email, phone_number=body.phone_number)
    return ApiResponse(
        message="A new verification code has been sent",
        data=CodeSentData(
            expires_at=result.expires_at, verification_sent=result.verification_sent
        ),
    )
