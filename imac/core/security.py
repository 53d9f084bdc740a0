"""Password hashing primitives and log masking helpers."""

import bcrypt

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72

# Min/max lengths for request validation (the policy enforces the rest).
EMAIL_MAX_LEN = 255
NAME_MIN_LEN = 2
NAME_MAX_LEN = 100
PASSWORD_MAX_LEN = 128


def hash_password(plain_password: str, rounds: int) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


def mask_sensitive(value: str | None, visible: int = 4) -> str:
    """Mask all but the last `visible` characters, e.g. for emails in logs."""
    if not value or len(value) <= visible:
        return "***"
    return "*" * (len(value) - visible) + value[-visible:]
