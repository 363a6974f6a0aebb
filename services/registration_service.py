"""
Garage-owner registration.

Registration runs in four steps against a registration session:

1. contact details and password (session created, code sent)
2. business location
3. business details (fresh code sent)
4. code verification, which creates the user and garage profile

No user row exists until step 4 succeeds. The password supplied at step 1
is hashed immediately and carried on the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import SecuritySettings
from errors import (
    AppError,
    ConflictError,
    InvalidCodeError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from repositories import (
    ProfileRepository,
    RegistrationSessionRepository,
    UserRepository,
)
from schemas.models.registration_session import RegistrationSessionDoc
from schemas.models.user import Coordinates, GarageProfileDoc, UserRole, UserStatus
from schemas.models.verification_code import CodePurpose
from services.token_service import TokenService
from services.verification_service import VerificationService
from shared.crypto import CredentialHasher
from shared.datetime_utils import utcnow
from shared.logging import get_logger
from shared.validators import (
    check_password_strength,
    is_valid_email,
    normalize_email,
    normalize_phone_number,
)

log = get_logger(__name__)

SESSION_NOT_FOUND_MESSAGE = "Registration session not found or expired"


@dataclass
class Step1Result:
    session_id: str
    expires_at: datetime
    email: str
    phone_number: str
    verification_sent: bool
    next_step: int = 2
    requires_verification: bool = True


@dataclass
class StepResult:
    session_id: str
    step_completed: int
    next_step: int
    verification_sent: Optional[bool] = None


@dataclass
class VerifiedRegistration:
    user: dict
    profile: dict
    access_token: str
    refresh_token: str


@dataclass
class ResendResult:
    expires_at: datetime
    verification_sent: bool


def _require_email(email: str) -> str:
    email = normalize_email(email or "")
    if not email or not is_valid_email(email):
        raise ValidationError("Invalid email address", field="email")
    return email


def _require_phone(phone_number: str) -> str:
    normalized = normalize_phone_number(phone_number or "")
    if normalized is None:
        raise ValidationError(
            "Invalid UAE phone number. Use +971XXXXXXXXX or 05XXXXXXXX",
            field="phone_number",
        )
    return normalized


def _require_text(value: Optional[str], field_name: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required", field=field_name)
    return value


class RegistrationService:
    def __init__(
        self,
        *,
        users: UserRepository,
        profiles: ProfileRepository,
        sessions: RegistrationSessionRepository,
        verification: VerificationService,
        tokens: TokenService,
        hasher: CredentialHasher,
        settings: SecuritySettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._profiles = profiles
        self._sessions = sessions
        self._verification = verification
        self._tokens = tokens
        self._hasher = hasher
        self._settings = settings
        self._clock = clock

    async def register_step1(
        self, full_name: str, email: str, phone_number: str, password: str
    ) -> Step1Result:
        full_name = _require_text(full_name, "full_name", "Full name")
        email = _require_email(email)
        phone_number = _require_phone(phone_number)
        problem = check_password_strength(password, self._settings.password_min_length)
        if problem:
            raise ValidationError(problem, field="password")

        now = self._clock()
        if await self._users.get_by_email(email) is not None:
            log.info("registration_conflict", reason="user_exists")
            raise ConflictError("Email already registered", field="email")
        if await self._sessions.find_active_by_email(email, now=now) is not None:
            log.info("registration_conflict", reason="session_in_progress")
            raise ConflictError(
                "A registration for this email is already in progress", field="email"
            )

        session = await self._sessions.create(
            email=email,
            phone_number=phone_number,
            full_name=full_name,
            password_hash=self._hasher.hash(password),
            ttl_hours=self._settings.registration_session_ttl_hours,
            now=now,
        )
        issued = await self._verification.issue(
            purpose=CodePurpose.REGISTRATION,
            email=email,
            phone_number=phone_number,
            display_name=full_name,
        )
        log.info(
            "registration_step_completed",
            step=1,
            session_id=session.session_id[:8],
            verification_sent=issued.delivered,
        )
        return Step1Result(
            session_id=session.session_id,
            expires_at=session.expires_at,
            email=email,
            phone_number=phone_number,
            verification_sent=issued.delivered,
        )

    async def _load_session(self, session_id: str) -> RegistrationSessionDoc:
        session = None
        if session_id:
            session = await self._sessions.get(session_id, now=self._clock())
        if session is None:
            raise NotFoundError(SESSION_NOT_FOUND_MESSAGE, field="session_id")
        return session

    async def register_step2(
        self,
        session_id: str,
        address: str,
        street: str,
        state: str,
        location: str,
        coordinates: Optional[Coordinates] = None,
    ) -> StepResult:
        fields = {
            "address": _require_text(address, "address", "Address"),
            "street": _require_text(street, "street", "Street"),
            "state": _require_text(state, "state", "State"),
            "location": _require_text(location, "location", "Location"),
        }
        if coordinates is not None:
            fields["coordinates"] = coordinates.model_dump()

        session = await self._load_session(session_id)
        if not await self._sessions.update_step2(session_id, fields, now=self._clock()):
            # Raced with expiry between the read and the conditional update
            raise NotFoundError(SESSION_NOT_FOUND_MESSAGE, field="session_id")

        log.info("registration_step_completed", step=2, session_id=session_id[:8])
        return StepResult(
            session_id=session_id,
            step_completed=max(session.step_completed, 2),
            next_step=3,
        )

    async def register_step3(
        self,
        session_id: str,
        company_legal_name: str,
        trade_license_number: str,
        emirates_id_url: Optional[str] = None,
        vat_certification: Optional[str] = None,
    ) -> StepResult:
        fields = {
            "company_legal_name": _require_text(
                company_legal_name, "company_legal_name", "Company legal name"
            ),
            "trade_license_number": _require_text(
                trade_license_number, "trade_license_number", "Trade license number"
            ).upper(),
            "emirates_id_url": (emirates_id_url or "").strip() or None,
            "vat_certification": (vat_certification or "").strip().upper() or None,
        }

        session = await self._load_session(session_id)
        if session.step_completed < 2:
            raise PreconditionFailedError(
                "Please complete step 2 (business location) first",
                details={"step_completed": session.step_completed},
            )
        if not await self._sessions.update_step3(session_id, fields, now=self._clock()):
            raise PreconditionFailedError(
                "Please complete step 2 (business location) first"
            )

        issued = await self._verification.issue(
            purpose=CodePurpose.REGISTRATION,
            email=session.email,
            phone_number=session.phone_number,
            display_name=session.full_name,
        )
        log.info(
            "registration_step_completed",
            step=3,
            session_id=session_id[:8],
            verification_sent=issued.delivered,
        )
        return StepResult(
            session_id=session_id,
            step_completed=3,
            next_step=4,
            verification_sent=issued.delivered,
        )

    async def _find_session_for_verification(
        self,
        email: Optional[str],
        phone_number: Optional[str],
        session_id: Optional[str],
    ) -> RegistrationSessionDoc:
        now = self._clock()
        if session_id:
            return await self._load_session(session_id)

        session = None
        if email:
            session = await self._sessions.find_active_by_email(
                normalize_email(email), now=now
            )
        if session is None and phone_number:
            normalized = normalize_phone_number(phone_number)
            if normalized:
                session = await self._sessions.find_active_by_phone(normalized, now=now)
        if session is None:
            # Sessions are deleted on success, so a replayed code lands here
            log.warning("otp_verification_failed", reason="no_session")
            raise InvalidCodeError("Invalid verification code", field="code")
        return session

    async def verify_registration(
        self,
        code: str,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> VerifiedRegistration:
        """Complete registration: match the code, then create user and profile."""
        if not (email or phone_number or session_id):
            raise ValidationError(
                "Email, phone number or session id is required", field="email"
            )
        if not code:
            raise ValidationError("Verification code is required", field="code")

        session = await self._find_session_for_verification(
            email, phone_number, session_id
        )
        if session.step_completed < 3:
            raise PreconditionFailedError(
                "Please complete all registration steps before verifying",
                details={"step_completed": session.step_completed},
            )
        if await self._users.get_by_email(session.email) is not None:
            raise ConflictError("Email already registered", field="email")

        await self._verification.check(
            code,
            purpose=CodePurpose.REGISTRATION,
            email=session.email,
            phone_number=session.phone_number,
        )

        now = self._clock()
        user = await self._users.create(
            session.email,
            session.password_hash,
            role=UserRole.GARAGE_OWNER,
            status=UserStatus.ACTIVE,
        )
        profile_doc = GarageProfileDoc(
            user_id=user.id,
            full_name=session.full_name,
            email=session.email,
            phone_number=session.phone_number,
            address=session.address,
            street=session.street,
            state=session.state,
            location=session.location,
            coordinates=session.coordinates,
            company_legal_name=session.company_legal_name,
            emirates_id_url=session.emirates_id_url,
            trade_license_number=session.trade_license_number,
            vat_certification=session.vat_certification,
            role=UserRole.GARAGE_OWNER,
            status=UserStatus.ACTIVE,
            is_email_verified=True,
            is_phone_verified=True,
            email_verified_at=now,
            phone_verified_at=now,
            created_at=now,
        )
        try:
            profile = await self._profiles.create(profile_doc)
        except AppError:
            # Without its profile the account is unusable; drop it so a retry
            # after a fresh code can create both again
            await self._users.delete(user.id)
            log.error("registration_rolled_back", user_id=user.id_str)
            raise
        await self._sessions.delete(session.session_id)

        pair = self._tokens.issue_pair(user)
        log.info("registration_completed", user_id=user.id_str)
        return VerifiedRegistration(
            user=user.public_dict(),
            profile=profile.summary(),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    async def resend_code(
        self, email: Optional[str] = None, phone_number: Optional[str] = None
    ) -> ResendResult:
        """Rotate the registration code for an in-flight session."""
        if not (email or phone_number):
            raise ValidationError("Email or phone number is required", field="email")

        now = self._clock()
        session = None
        if email:
            session = await self._sessions.find_active_by_email(
                normalize_email(email), now=now
            )
        if session is None and phone_number:
            normalized = normalize_phone_number(phone_number)
            if normalized:
                session = await self._sessions.find_active_by_phone(normalized, now=now)
        if session is None:
            raise NotFoundError("No registration in progress for this contact")

        issued = await self._verification.issue(
            purpose=CodePurpose.REGISTRATION,
            email=session.email,
            phone_number=session.phone_number,
            display_name=session.full_name,
        )
        log.info(
            "verification_code_resent",
            session_id=session.session_id[:8],
            verification_sent=issued.delivered,
        )
        return ResendResult(
            expires_at=issued.expires_at,
            verification_sent=issued.delivered,
        )
