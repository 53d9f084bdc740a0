"""Strong-password policy: character-class rules plus a common-password denylist."""

import re
from typing import NamedTuple

PASSWORD_MIN_LEN = 8

# Characters accepted by the "special character" rule.
SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

# Most common leaked passwords; compared case-insensitively.
COMMON_PASSWORDS = frozenset(
    {
        "password", "password123", "123456", "12345678", "qwerty",
        "abc123", "monkey", "1234567", "letmein", "trustno1",
        "dragon", "baseball", "iloveyou", "master", "sunshine",
        "ashley", "bailey", "passw0rd", "shadow", "123123",
        "admin", "admin123", "root", "toor", "pass",
        "12345", "123456789", "1234567890", "qwertyuiop",
    }
)

MSG_TOO_SHORT = f"Password must be at least {PASSWORD_MIN_LEN} characters"
MSG_NO_UPPER = "Password must contain at least one uppercase letter"
MSG_NO_LOWER = "Password must contain at least one lowercase letter"
MSG_NO_DIGIT = "Password must contain at least one digit"
MSG_NO_SPECIAL = "Password must contain at least one special character (!@#$%^&* etc)"
MSG_COMMON = "This password is too common. Choose a stronger password"

_SPECIAL_RE = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")

# (predicate that must hold, message when it does not), checked in order
_RULES = (
    (lambda pw: len(pw) >= PASSWORD_MIN_LEN, MSG_TOO_SHORT),
    (lambda pw: re.search(r"[A-Z]", pw) is not None, MSG_NO_UPPER),
    (lambda pw: re.search(r"[a-z]", pw) is not None, MSG_NO_LOWER),
    (lambda pw: re.search(r"[0-9]", pw) is not None, MSG_NO_DIGIT),
    (lambda pw: _SPECIAL_RE.search(pw) is not None, MSG_NO_SPECIAL),
    (lambda pw: pw.lower() not in COMMON_PASSWORDS, MSG_COMMON),
)


class PasswordCheck(NamedTuple):
    """Outcome of validate_password; reason is set only when ok is False."""

    ok: bool
    reason: str | None = None


def validate_password(password: str) -> PasswordCheck:
    """
    Check a candidate password against the policy. The first failing rule
    wins and its message names the rule.
    """
    for holds, message in _RULES:
        if not holds(password):
            return PasswordCheck(ok=False, reason=message)
    return PasswordCheck(ok=True)
