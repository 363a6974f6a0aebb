"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file) once at
startup and injected into the services that need them.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "autosaaz"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis rate-limit counters are kept in process memory
    redis_uri: Optional[str] = None


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "autosaaz-api"
    jwt_audience: str = "autosaaz-client"
    access_token_ttl_seconds: int = 604800  # 7 days
    refresh_token_ttl_seconds: int = 2592000  # 30 days
    reset_proof_ttl_seconds: int = 900

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class SecuritySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # OTP
    otp_length: int = 6
    otp_expiry_minutes: int = 10
    max_otp_attempts: int = 3

    # Password hashing (argon2 time cost)
    password_hash_time_cost: int = 3
    password_min_length: int = 8

    # Login lockout
    max_login_attempts: int = 5
    account_lockout_duration_minutes: int = 30
    require_email_verification: bool = False

    # Registration
    registration_session_ttl_hours: int = 24

    # Password reset rate limiting (per email)
    password_reset_max_requests: int = 3
    password_reset_window_seconds: int = 3600

    # Auth endpoint throttling (per client IP, shared by the public auth routes)
    auth_rate_limit_max_requests: int = 5
    auth_rate_limit_window_seconds: int = 900


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@autosaaz.com"
    zepto_from_name: str = "AutoSaaz"


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sms_api_url: str = ""
    sms_api_key: str = ""
    sms_sender_id: str = "AutoSaaz"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class WorkerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    cleanup_interval_seconds: int = 900


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "https://autosaaz.com"
    app_name: str = "AutoSaaz"

    cors_origins: list[str] = ["http://localhost:3000"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    jwt: Optional[JWTSettings] = None
    security: Optional[SecuritySettings] = None
    email: Optional[EmailSettings] = None
    sms: Optional[SmsSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None
    worker: Optional[WorkerSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.security is None:
            self.security = SecuritySettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        if self.worker is None:
            self.worker = WorkerSettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
