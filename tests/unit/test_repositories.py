"""Unit tests for the Mongo repositories against mocked async collections."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from errors import ConflictError, UnavailableError
from repositories import (
    ProfileRepository,
    RegistrationSessionRepository,
    UserRepository,
    VerificationCodeRepository,
)
from schemas.models.user import GarageProfileDoc, UserRole, UserStatus
from schemas.models.verification_code import CodePurpose, VerificationMethod
from shared.crypto import hash_token

NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)
USER_ID = ObjectId("507f1f77bcf86cd799439011")


@pytest.fixture
def col():
    return AsyncMock()


@pytest.fixture
def db(col):
    database = MagicMock()
    database.__getitem__.return_value = col
    return database


class TestStoreOperation:
    async def test_pymongo_error_becomes_unavailable(self, db, col):
        col.find_one.side_effect = ServerSelectionTimeoutError("no servers")
        with pytest.raises(UnavailableError) as exc:
            await UserRepository(db).get_by_email("owner@garage.ae")
        assert exc.value.error_code == "service_unavailable"

    async def test_malformed_id_short_circuits(self, db, col):
        assert await UserRepository(db).get_by_id("not-an-object-id") is None
        col.find_one.assert_not_awaited()


class TestUserRepository:
    async def test_create_lowercases_email(self, db, col):
        col.insert_one.return_value = MagicMock(inserted_id=USER_ID)
        user = await UserRepository(db).create(
            "Owner@Garage.AE", "hash", UserRole.GARAGE_OWNER, UserStatus.ACTIVE
        )
        assert user.id == USER_ID
        doc = col.insert_one.call_args.args[0]
        assert doc["email"] == "owner@garage.ae"
        assert doc["status"] == "active"
        assert "_id" not in doc

    async def test_create_duplicate_conflicts(self, db, col):
        col.insert_one.side_effect = DuplicateKeyError("E11000")
        with pytest.raises(ConflictError) as exc:
            await UserRepository(db).create(
                "owner@garage.ae", "hash", UserRole.GARAGE_OWNER, UserStatus.ACTIVE
            )
        assert exc.value.field == "email"

    async def test_get_by_email_queries_lowercase(self, db, col):
        col.find_one.return_value = None
        assert await UserRepository(db).get_by_email("OWNER@garage.ae") is None
        col.find_one.assert_awaited_once_with({"email": "owner@garage.ae"})

    async def test_increment_failed_login_returns_count(self, db, col):
        col.find_one_and_update.return_value = {"_id": USER_ID, "failed_login_attempts": 4}
        count = await UserRepository(db).increment_failed_login(USER_ID)
        assert count == 4
        update = col.find_one_and_update.call_args.args[1]
        assert update["$inc"] == {"failed_login_attempts": 1}

    async def test_update_email_taken_conflicts(self, db, col):
        col.find_one_and_update.side_effect = DuplicateKeyError("E11000")
        with pytest.raises(ConflictError) as exc:
            await UserRepository(db).update(USER_ID, {"email": "taken@garage.ae"})
        assert exc.value.field == "email"

    async def test_delete(self, db, col):
        col.delete_one.return_value = MagicMock(deleted_count=1)
        assert await UserRepository(db).delete(str(USER_ID)) is True
        col.delete_one.assert_awaited_once_with({"_id": USER_ID})

    async def test_lock_sets_deadline(self, db, col):
        until = await UserRepository(db).lock(USER_ID, 30, now=NOW)
        assert until == NOW + timedelta(minutes=30)
        update = col.update_one.call_args.args[1]
        assert update["$set"]["locked_until"] == until


class TestProfileRepository:
    async def test_get_by_user_id(self, db, col):
        col.find_one.return_value = {
            "_id": ObjectId(),
            "user_id": USER_ID,
            "full_name": "Ahmed Ali",
            "email": "owner@garage.ae",
            "phone_number": "+971501234567",
            "role": "garage_owner",
            "status": "active",
        }
        profile = await ProfileRepository(db).get_by_user_id(str(USER_ID))
        assert profile.full_name == "Ahmed Ali"
        col.find_one.assert_awaited_once_with({"user_id": USER_ID})

    async def test_create_duplicate_conflicts(self, db, col):
        col.insert_one.side_effect = DuplicateKeyError("E11000")
        profile = GarageProfileDoc(
            user_id=USER_ID,
            full_name="Ahmed Ali",
            email="owner@garage.ae",
            phone_number="+971501234567",
            role=UserRole.GARAGE_OWNER,
            status=UserStatus.ACTIVE,
        )
        with pytest.raises(ConflictError):
            await ProfileRepository(db).create(profile)

    async def test_update_sets_fields_and_timestamp(self, db, col):
        col.find_one_and_update.return_value = {
            "_id": ObjectId(),
            "user_id": USER_ID,
            "full_name": "Ahmed Ali",
            "email": "owner@garage.ae",
            "phone_number": "+971509876543",
            "language": "ar",
        }
        profile = await ProfileRepository(db).update(
            str(USER_ID), {"phone_number": "+971509876543", "language": "ar"}
        )
        assert profile.language == "ar"
        query, update = col.find_one_and_update.call_args.args
        assert query == {"user_id": USER_ID}
        assert update["$set"]["phone_number"] == "+971509876543"
        assert "updated_at" in update["$set"]


class TestRegistrationSessionRepository:
    async def test_create_defaults(self, db, col):
        col.insert_one.return_value = MagicMock(inserted_id=ObjectId())
        session = await RegistrationSessionRepository(db).create(
            email="Owner@garage.ae",
            phone_number="+971501234567",
            full_name="Ahmed Ali",
            password_hash="hash",
            now=NOW,
        )
        assert session.step_completed == 1
        assert session.email == "owner@garage.ae"
        assert session.expires_at == NOW + timedelta(hours=24)
        assert len(session.session_id) == 64

    async def test_get_excludes_expired(self, db, col):
        col.find_one.return_value = None
        await RegistrationSessionRepository(db).get("abc", now=NOW)
        col.find_one.assert_awaited_once_with(
            {"session_id": "abc", "expires_at": {"$gt": NOW}}
        )

    async def test_step3_requires_step2(self, db, col):
        col.update_one.return_value = MagicMock(matched_count=0)
        ok = await RegistrationSessionRepository(db).update_step3(
            "abc", {"company_legal_name": "X"}, now=NOW
        )
        assert ok is False
        query, update = col.update_one.call_args.args
        assert query["step_completed"] == {"$gte": 2}
        assert update["$max"] == {"step_completed": 3}

    async def test_step2_matched(self, db, col):
        col.update_one.return_value = MagicMock(matched_count=1)
        assert await RegistrationSessionRepository(db).update_step2(
            "abc", {"state": "Dubai"}, now=NOW
        )

    async def test_sweep_expired(self, db, col):
        col.delete_many.return_value = MagicMock(deleted_count=7)
        assert await RegistrationSessionRepository(db).sweep_expired(NOW) == 7
        col.delete_many.assert_awaited_once_with({"expires_at": {"$lte": NOW}})


class TestVerificationCodeRepository:
    async def test_create_stores_hash_only(self, db, col):
        col.insert_one.return_value = MagicMock(inserted_id=ObjectId())
        record = await VerificationCodeRepository(db).create(
            code="482913",
            method=VerificationMethod.EMAIL,
            purpose=CodePurpose.PASSWORD_RESET,
            expiry_minutes=10,
            email="Owner@garage.ae",
            user_id=str(USER_ID),
            now=NOW,
        )
        doc = col.insert_one.call_args.args[0]
        assert doc["code_hash"] == hash_token("482913")
        assert "482913" not in doc.values()
        assert doc["purpose"] == "password_reset"
        assert doc["user_id"] == USER_ID
        assert record.expires_at == NOW + timedelta(minutes=10)

    async def test_find_latest_unused_filter(self, db, col):
        col.find_one.return_value = None
        await VerificationCodeRepository(db).find_latest_unused(
            purpose=CodePurpose.REGISTRATION, phone_number="+971501234567"
        )
        query = col.find_one.call_args.args[0]
        assert query == {
            "purpose": "registration",
            "phone_number": "+971501234567",
            "is_used": False,
        }

    async def test_target_required(self, db):
        with pytest.raises(ValueError):
            await VerificationCodeRepository(db).find_latest_unused(
                purpose=CodePurpose.REGISTRATION
            )

    async def test_mark_used_is_conditional(self, db, col):
        col.update_one.return_value = MagicMock(modified_count=0)
        assert await VerificationCodeRepository(db).mark_used(ObjectId(), NOW) is False
        query = col.update_one.call_args.args[0]
        assert query["is_used"] is False

    async def test_invalidate_active_for(self, db, col):
        col.update_many.return_value = MagicMock(modified_count=2)
        count = await VerificationCodeRepository(db).invalidate_active_for(
            purpose=CodePurpose.REGISTRATION, email="owner@garage.ae", now=NOW
        )
        assert count == 2
