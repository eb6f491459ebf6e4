"""Password hashing (bcrypt via passlib)."""

from passlib.context import CryptContext

from src.config import settings

from .errors import ValidationError

MAX_BCRYPT_BYTES = 72  # bcrypt limit

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """Hash *password*, rejecting input bcrypt would silently truncate."""
    if len(password.encode("utf-8")) > MAX_BCRYPT_BYTES:
        raise ValidationError(
            f"Password too long. Max {MAX_BCRYPT_BYTES} bytes allowed."
        )
    return pwd_context.hash(password)


def verify_password(raw: str, hashed: str) -> bool:
    if len(raw.encode("utf-8")) > MAX_BCRYPT_BYTES:
        return False
    return pwd_context.verify(raw, hashed)
