from repositories.profile_repository import ProfileRepository
from repositories.registration_session_repository import RegistrationSessionRepository
from repositories.user_repository import UserRepository
from repositories.verification_code_repository import VerificationCodeRepository

__all__ = [
    "ProfileRepository",
    "RegistrationSessionRepository",
    "UserRepository",
    "VerificationCodeRepository",
]
