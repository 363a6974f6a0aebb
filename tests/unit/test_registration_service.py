"""Unit tests for the four-step RegistrationService."""

import pytest

from errors import (
    ConflictError,
    ExpiredCodeError,
    InvalidCodeError,
    NotFoundError,
    PreconditionFailedError,
    UnavailableError,
    ValidationError,
)
from schemas.models.user import Coordinates

PASSWORD = "Garage@2024"
EMAIL = "owner@garage.ae"


async def _step1(registration, email=EMAIL, phone="0501234567"):
    return await registration.register_step1("Ahmed Ali", email, phone, PASSWORD)


async def _step2(registration, session_id):
    return await registration.register_step2(
        session_id,
        "Warehouse 4, Al Quoz",
        "Street 12",
        "Dubai",
        "Al Quoz Industrial 3",
        Coordinates(latitude=25.13, longitude=55.23),
    )


async def _step3(registration, session_id):
    return await registration.register_step3(
        session_id, "Ali Auto Repairs LLC", "tl-12345", None, "vat-998"
    )


async def _through_step3(registration):
    started = await _step1(registration)
    await _step2(registration, started.session_id)
    await _step3(registration, started.session_id)
    return started


class TestStep1:
    async def test_creates_session_and_sends_code(
        self, registration, sessions, email_provider, sms_provider
    ):
        result = await _step1(registration, email="  Owner@Garage.AE ")
        assert result.email == EMAIL
        assert result.phone_number == "+971501234567"
        assert result.next_step == 2
        assert result.requires_verification is True
        assert result.verification_sent is True
        assert len(result.session_id) == 64
        assert sessions.docs[result.session_id]["step_completed"] == 1
        assert len(email_provider.sent) == 1
        assert len(sms_provider.sent) == 1

    async def test_password_hashed_on_session(self, registration, sessions, hasher):
        result = await _step1(registration)
        stored = sessions.docs[result.session_id]["password_hash"]
        assert stored != PASSWORD
        assert hasher.verify(PASSWORD, stored)

    async def test_session_lifetime_24h(self, registration, clock):
        result = await _step1(registration)
        assert (result.expires_at - clock()).total_seconds() == 24 * 3600

    async def test_no_user_created(self, registration, users):
        await _step1(registration)
        assert users.docs == {}

    async def test_weak_password(self, registration):
        with pytest.raises(ValidationError) as exc:
            await registration.register_step1("A", EMAIL, "0501234567", "short")
        assert exc.value.field == "password"

    async def test_invalid_email(self, registration):
        with pytest.raises(ValidationError) as exc:
            await registration.register_step1("A", "nope", "0501234567", PASSWORD)
        assert exc.value.field == "email"

    async def test_invalid_phone(self, registration):
        with pytest.raises(ValidationError) as exc:
            await registration.register_step1("A", EMAIL, "+44 20 7946 0958", PASSWORD)
        assert exc.value.field == "phone_number"

    async def test_duplicate_registration_conflicts(self, registration):
        await _step1(registration)
        with pytest.raises(ConflictError):
            await _step1(registration)

    async def test_existing_user_conflicts(self, registration, users, hasher):
        await users.add(EMAIL, hasher.hash(PASSWORD))
        with pytest.raises(ConflictError):
            await _step1(registration)

    async def test_expired_session_does_not_block(self, registration, clock):
        await _step1(registration)
        clock.advance(hours=25)
        await _step1(registration)

    async def test_delivery_failure_still_succeeds(
        self, registration, email_provider, sms_provider
    ):
        email_provider.succeed = False
        sms_provider.succeed = False
        result = await _step1(registration)
        assert result.verification_sent is False


class TestStep2And3:
    async def test_step2_saves_location(self, registration, sessions):
        started = await _step1(registration)
        result = await _step2(registration, started.session_id)
        assert result.step_completed == 2
        assert result.next_step == 3
        doc = sessions.docs[started.session_id]
        assert doc["step_completed"] == 2
        assert doc["state"] == "Dubai"
        assert doc["coordinates"] == {"latitude": 25.13, "longitude": 55.23}

    async def test_step2_unknown_session(self, registration):
        with pytest.raises(NotFoundError):
            await _step2(registration, "f" * 64)

    async def test_step2_expired_session(self, registration, clock):
        started = await _step1(registration)
        clock.advance(hours=24, seconds=1)
        with pytest.raises(NotFoundError):
            await _step2(registration, started.session_id)

    async def test_step3_before_step2_fails(self, registration, sessions):
        started = await _step1(registration)
        with pytest.raises(PreconditionFailedError):
            await _step3(registration, started.session_id)
        assert sessions.docs[started.session_id]["step_completed"] == 1

    async def test_step3_uppercases_and_sends_fresh_code(
        self, registration, sessions, codes, email_provider
    ):
        started = await _step1(registration)
        await _step2(registration, started.session_id)
        result = await _step3(registration, started.session_id)
        assert result.next_step == 4
        assert result.verification_sent is True
        doc = sessions.docs[started.session_id]
        assert doc["step_completed"] == 3
        assert doc["trade_license_number"] == "TL-12345"
        assert doc["vat_certification"] == "VAT-998"
        assert [d["is_used"] for d in codes.docs] == [True, False]
        assert len(email_provider.sent) == 2

    async def test_step2_after_step3_keeps_step(self, registration, sessions):
        started = await _through_step3(registration)
        result = await _step2(registration, started.session_id)
        assert result.step_completed == 3
        assert sessions.docs[started.session_id]["step_completed"] == 3


class TestVerify:
    async def test_completes_registration(
        self, registration, users, profiles, sessions, tokens, email_provider
    ):
        started = await _through_step3(registration)
        result = await registration.verify_registration(
            email_provider.last_code, email=EMAIL
        )
        assert started.session_id not in sessions.docs
        assert "password_hash" not in result.user
        assert result.user["status"] == "active"
        assert result.user["role"] == "garage_owner"
        assert result.profile["company_legal_name"] == "Ali Auto Repairs LLC"
        claims = tokens.verify_access_token(result.access_token)
        assert claims["email"] == EMAIL
        assert tokens.verify_refresh_token(result.refresh_token)["sub"] == claims["sub"]

        (profile,) = profiles.docs.values()
        assert profile["is_email_verified"] is True
        assert profile["is_phone_verified"] is True
        assert profile["trade_license_number"] == "TL-12345"

    async def test_user_can_log_in_with_step1_password(
        self, registration, auth, email_provider
    ):
        await _through_step3(registration)
        await registration.verify_registration(email_provider.last_code, email=EMAIL)
        result = await auth.login(EMAIL, PASSWORD)
        assert result.profile["full_name"] == "Ahmed Ali"

    async def test_by_session_id(self, registration, email_provider):
        started = await _through_step3(registration)
        result = await registration.verify_registration(
            email_provider.last_code, session_id=started.session_id
        )
        assert result.user["email"] == EMAIL

    async def test_by_phone(self, registration, email_provider):
        await _through_step3(registration)
        result = await registration.verify_registration(
            email_provider.last_code, phone_number="+971 50 123 4567"
        )
        assert result.user["email"] == EMAIL

    async def test_same_code_twice(self, registration, email_provider):
        await _through_step3(registration)
        code = email_provider.last_code
        await registration.verify_registration(code, email=EMAIL)
        with pytest.raises(InvalidCodeError):
            await registration.verify_registration(code, email=EMAIL)

    async def test_before_step3_fails(self, registration, email_provider):
        started = await _step1(registration)
        await _step2(registration, started.session_id)
        with pytest.raises(PreconditionFailedError):
            await registration.verify_registration(email_provider.last_code, email=EMAIL)

    async def test_requires_identifier(self, registration):
        with pytest.raises(ValidationError):
            await registration.verify_registration("123456")

    async def test_unknown_session_id(self, registration):
        with pytest.raises(NotFoundError):
            await registration.verify_registration("123456", session_id="a" * 64)

    async def test_expired_code(self, registration, clock, email_provider):
        await _through_step3(registration)
        clock.advance(minutes=11)
        with pytest.raises(ExpiredCodeError):
            await registration.verify_registration(email_provider.last_code, email=EMAIL)

    async def test_wrong_code_leaves_no_user(self, registration, users, email_provider):
        await _through_step3(registration)
        wrong = "000000" if email_provider.last_code != "000000" else "111111"
        with pytest.raises(InvalidCodeError):
            await registration.verify_registration(wrong, email=EMAIL)
        assert users.docs == {}

    async def test_email_taken_meanwhile(
        self, registration, users, hasher, email_provider
    ):
        await _through_step3(registration)
        await users.add(EMAIL, hasher.hash("Other@2024x"))
        with pytest.raises(ConflictError):
            await registration.verify_registration(email_provider.last_code, email=EMAIL)

    async def test_profile_failure_rolls_back_user(
        self, registration, users, profiles, sessions, email_provider, mocker
    ):
        await _through_step3(registration)
        mocker.patch.object(
            profiles, "create", side_effect=UnavailableError("store down")
        )
        with pytest.raises(UnavailableError):
            await registration.verify_registration(
                email_provider.last_code, email=EMAIL
            )
        assert users.docs == {}
        assert len(sessions.docs) == 1

        mocker.stopall()
        await registration.resend_code(email=EMAIL)
        result = await registration.verify_registration(
            email_provider.last_code, email=EMAIL
        )
        assert result.user["email"] == EMAIL


class TestResend:
    async def test_rotates_code(self, registration, codes, email_provider):
        await _step1(registration)
        result = await registration.resend_code(email=EMAIL)
        assert result.verification_sent is True
        assert len(email_provider.sent) == 2
        assert [d["is_used"] for d in codes.docs] == [True, False]

    async def test_by_phone(self, registration, email_provider):
        await _step1(registration)
        await registration.resend_code(phone_number="0501234567")
        assert len(email_provider.sent) == 2

    async def test_no_session(self, registration):
        with pytest.raises(NotFoundError):
            await registration.resend_code(email="nobody@garage.ae")

    async def test_requires_target(self, registration):
        with pytest.raises(ValidationError):
            await registration.resend_code()


async def test_jane_doe_duplicate_start(registration, email_provider):
    first = await registration.register_step1(
        "Jane Doe", "jane@x.com", "0501234567", "Passw0rd!"
    )
    assert first.verification_sent is True
    assert email_provider.sent[0]["email"] == "jane@x.com"
    with pytest.raises(ConflictError):
        await registration.register_step1(
            "Jane Doe", "jane@x.com", "0501234567", "Passw0rd!"
        )
