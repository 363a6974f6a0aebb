"""
Account profile view and self-service edits.

An email change moves both the login identity on the user and the contact
address on the garage profile, and the new address must not belong to
another account. A password change needs the current password and runs
through PasswordService, so the strength rules live in one place.
"""

from __future__ import annotations

from typing import Optional

from errors import ConflictError, NotFoundError, ValidationError
from repositories import ProfileRepository, UserRepository
from schemas.models.user import UserDoc
from services.password_service import PasswordService
from shared.logging import get_logger
from shared.validators import is_valid_email, normalize_email, normalize_phone_number

log = get_logger(__name__)


class ProfileService:
    def __init__(
        self,
        *,
        users: UserRepository,
        profiles: ProfileRepository,
        passwords: PasswordService,
    ) -> None:
        self._users = users
        self._profiles = profiles
        self._passwords = passwords

    async def _require_user(self, user_id: str) -> UserDoc:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_profile(self, user_id: str) -> dict:
        user = await self._require_user(user_id)
        profile = await self._profiles.get_by_user_id(user.id)
        return {
            "user": user.public_dict(),
            "profile": profile.summary() if profile else None,
        }

    async def update_profile(
        self,
        user_id: str,
        *,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        language: Optional[str] = None,
        timezone: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> dict:
        """Apply the given changes and return the fresh user and profile.

        Everything is validated before anything is written, so a rejected
        password or a taken email leaves the account untouched.

        Raises:
            ValidationError: malformed email or phone number, weak password.
            ConflictError: the email belongs to another account.
            AuthenticationError: current password wrong on a password change.
        """
        user = await self._require_user(user_id)
        profile_fields: dict = {}

        new_email = None
        if email is not None:
            new_email = normalize_email(email)
            if not is_valid_email(new_email):
                raise ValidationError("Invalid email address", field="email")
            if new_email == user.email:
                new_email = None
            else:
                other = await self._users.get_by_email(new_email)
                if other is not None and other.id != user.id:
                    log.info(
                        "profile_update_rejected",
                        user_id=user.id_str,
                        reason="email_taken",
                    )
                    raise ConflictError("Email already in use", field="email")
                profile_fields["email"] = new_email

        if phone_number is not None:
            normalized = normalize_phone_number(phone_number)
            if normalized is None:
                raise ValidationError(
                    "Invalid UAE phone number. Use +971XXXXXXXXX or 05XXXXXXXX",
                    field="phone_number",
                )
            profile_fields["phone_number"] = normalized
        if language is not None:
            profile_fields["language"] = language
        if timezone is not None:
            profile_fields["timezone"] = timezone

        if new_password is not None:
            await self._passwords.change_password(
                user.id_str, current_password or "", new_password
            )
        if new_email is not None:
            # the unique index still catches a concurrent claim of the address
            await self._users.update(user.id, {"email": new_email})
        if profile_fields:
            await self._profiles.update(user.id, profile_fields)

        log.info(
            "profile_updated",
            user_id=user.id_str,
            fields=sorted(profile_fields),
            password_changed=new_password is not None,
        )
        return await self.get_profile(user.id_str)
