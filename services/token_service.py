"""
Token issuance and verification.

Access tokens carry {sub, email, role, type="access"}; refresh tokens carry
{sub, type="refresh"}; password-reset proofs carry
{sub, email, type="password_reset"}. Every token is bound to this service's
issuer and audience, and verification always checks the ``type`` claim so a
token can only be used for the purpose it was minted for.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt

from config import JWTSettings
from errors import AuthenticationError
from schemas.models.user import UserDoc
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
TOKEN_TYPE_PASSWORD_RESET = "password_reset"


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings
        if settings.use_rs256:
            # Support keys provided via env with literal \n sequences
            self._signing_key: Any = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key: Any = settings.jwt_public_key.replace("\\n", "\n")
            self._algorithm = "RS256"
        else:
            if not settings.jwt_secret:
                raise RuntimeError(
                    "JWT_SECRET must be set when RS256 keys are not provided"
                )
            self._signing_key = settings.jwt_secret
            self._verify_key = settings.jwt_secret
            self._algorithm = "HS256"

    def _encode(
        self, claims: dict, ttl_seconds: int, now: Optional[datetime] = None
    ) -> str:
        now = now or utcnow()
        payload = {
            **claims,
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._signing_key, algorithm=self._algorithm)

    def create_access_token(
        self, user_id: str, email: str, role: str, now: Optional[datetime] = None
    ) -> str:
        return self._encode(
            {
                "sub": str(user_id),
                "email": email,
                "role": role,
                "type": TOKEN_TYPE_ACCESS,
            },
            self._settings.access_token_ttl_seconds,
            now,
        )

    def create_refresh_token(self, user_id: str, now: Optional[datetime] = None) -> str:
        return self._encode(
            {"sub": str(user_id), "type": TOKEN_TYPE_REFRESH},
            self._settings.refresh_token_ttl_seconds,
            now,
        )

    def create_reset_proof_token(
        self, user_id: str, email: str, now: Optional[datetime] = None
    ) -> str:
        return self._encode(
            {"sub": str(user_id), "email": email, "type": TOKEN_TYPE_PASSWORD_RESET},
            self._settings.reset_proof_ttl_seconds,
            now,
        )

    def issue_pair(self, user: UserDoc) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(user.id_str, user.email, user.role),
            refresh_token=self.create_refresh_token(user.id_str),
        )

    def verify(self, token: str, expected_type: str) -> dict:
        """Decode *token* and check signature, issuer, audience, expiry and type.

        Raises:
            AuthenticationError: for any invalid, expired or mistyped token.
        """
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            log.info("token_rejected", reason="expired", expected_type=expected_type)
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            log.warning(
                "token_rejected",
                reason="invalid",
                expected_type=expected_type,
                error_type=type(e).__name__,
            )
            raise AuthenticationError("Invalid token")

        if claims.get("type") != expected_type:
            log.warning(
                "token_rejected",
                reason="wrong_type",
                expected_type=expected_type,
                actual_type=claims.get("type"),
            )
            raise AuthenticationError("Invalid token")
        return claims

    def verify_access_token(self, token: str) -> dict:
        return self.verify(token, TOKEN_TYPE_ACCESS)

    def verify_refresh_token(self, token: str) -> dict:
        return self.verify(token, TOKEN_TYPE_REFRESH)
