"""Unit tests for MongoDB document models."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError

from schemas.models.base import MongoBaseModel, PyObjectId
from schemas.models.registration_session import RegistrationSessionDoc
from schemas.models.user import (
    Coordinates,
    GarageProfileDoc,
    UserDoc,
    UserRole,
    UserStatus,
)
from schemas.models.verification_code import (
    CodePurpose,
    VerificationCodeDoc,
    VerificationMethod,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


# ── PyObjectId ────────────────────────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_objectid_instance(self):
        o = ObjectId()
        assert PyObjectId._validate(o) == o

    def test_accepts_valid_string(self):
        s = str(ObjectId())
        result = PyObjectId._validate(s)
        assert isinstance(result, ObjectId)
        assert str(result) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")


# ── MongoBaseModel ────────────────────────────────────────────────────────────

class TestMongoBaseModel:
    def test_from_mongo_returns_none_for_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in MongoBaseModel().to_mongo()

    def test_to_mongo_keeps_set_id(self):
        o = ObjectId()
        assert MongoBaseModel.model_validate({"_id": o}).to_mongo()["_id"] == o


# ── UserDoc / GarageProfileDoc ────────────────────────────────────────────────

class TestUserDoc:
    def _user(self, **overrides):
        data = dict(
            _id=ObjectId(),
            email="owner@garage.ae",
            password_hash="$argon2id$v=19$m=65536,t=3,p=4$abc$def",
            role=UserRole.GARAGE_OWNER,
            status=UserStatus.ACTIVE,
            created_at=now(),
        )
        data.update(overrides)
        return UserDoc.model_validate(data)

    def test_enums_stored_as_values(self):
        doc = self._user().to_mongo()
        assert doc["role"] == "garage_owner"
        assert doc["status"] == "active"

    def test_public_dict_hides_hash(self):
        user = self._user()
        public = user.public_dict()
        assert "password_hash" not in public
        assert public["id"] == user.id_str

    def test_failed_attempts_non_negative(self):
        with pytest.raises(ValidationError):
            self._user(failed_login_attempts=-1)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            self._user(status="deleted")


class TestGarageProfileDoc:
    def test_summary(self):
        profile = GarageProfileDoc(
            user_id=ObjectId(),
            full_name="Ahmed Ali",
            email="owner@garage.ae",
            phone_number="+971501234567",
            company_legal_name="Ali Auto Repairs LLC",
            coordinates=Coordinates(latitude=25.13, longitude=55.23),
            role=UserRole.GARAGE_OWNER,
            status=UserStatus.ACTIVE,
        )
        assert profile.summary() == {
            "full_name": "Ahmed Ali",
            "email": "owner@garage.ae",
            "phone_number": "+971501234567",
            "company_legal_name": "Ali Auto Repairs LLC",
            "status": "active",
            "language": None,
            "timezone": None,
        }
        assert profile.to_mongo()["coordinates"] == {
            "latitude": 25.13,
            "longitude": 55.23,
        }

    @pytest.mark.parametrize("lat,lng", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_coordinates_range(self, lat, lng):
        with pytest.raises(ValidationError):
            Coordinates(latitude=lat, longitude=lng)


# ── RegistrationSessionDoc ────────────────────────────────────────────────────

class TestRegistrationSessionDoc:
    def _data(self, **overrides):
        data = dict(
            session_id="a" * 64,
            email="owner@garage.ae",
            phone_number="+971501234567",
            full_name="Ahmed Ali",
            password_hash="hash",
            expires_at=now() + timedelta(hours=24),
        )
        data.update(overrides)
        return data

    def test_defaults_to_step_one(self):
        session = RegistrationSessionDoc.model_validate(self._data())
        assert session.step_completed == 1
        assert session.company_legal_name is None

    @pytest.mark.parametrize("step", [0, 4])
    def test_step_bounds(self, step):
        with pytest.raises(ValidationError):
            RegistrationSessionDoc.model_validate(self._data(step_completed=step))


# ── VerificationCodeDoc ───────────────────────────────────────────────────────

class TestVerificationCodeDoc:
    def test_round_trip_from_mongo(self):
        raw = {
            "_id": ObjectId(),
            "email": "owner@garage.ae",
            "code_hash": "f" * 64,
            "method": "both",
            "purpose": "password_reset",
            "attempts": 2,
            "is_used": False,
            "expires_at": now(),
        }
        record = VerificationCodeDoc.from_mongo(raw)
        assert record.method == VerificationMethod.BOTH.value
        assert record.purpose == CodePurpose.PASSWORD_RESET.value
        assert record.attempts == 2

    def test_attempts_non_negative(self):
        with pytest.raises(ValidationError):
            VerificationCodeDoc(
                code_hash="x",
                method=VerificationMethod.EMAIL,
                purpose=CodePurpose.REGISTRATION,
                attempts=-1,
                expires_at=now(),
            )
