"""
Validation of user-supplied values before they reach the record service.

The service trusts whatever it receives, so the CLI and the HTTP layer must
call these helpers first.
"""

import re
from typing import List

from zxcvbn import zxcvbn

from karak.config import (
    AVS_COUNTRY_PREFIX,
    MAX_PASSWORD_LENGTH,
    MIN_PASSWORD_LENGTH,
    MIN_PASSWORD_SCORE,
    USERNAME_PATTERN,
)
from karak.errors import KarakError
from karak.models import BloodType, Role

_USERNAME_RE = re.compile(USERNAME_PATTERN)


class InvalidInput(KarakError, ValueError):
    """A value failed format validation."""


def parse_username(value: str) -> str:
    """Return *value* stripped if it is a well-formed username."""
    username = str(value or "").strip()
    if not _USERNAME_RE.match(username):
        raise InvalidInput(
            "Username must start with a letter and contain 3-20 letters, digits or underscores."
        )
    return username


def _gtin13_ok(digits: str) -> bool:
    if len(digits) != 13 or not digits.isdigit():
        return False
    total = sum(int(d) * (3 if i % 2 else 1) for i, d in enumerate(digits[:12]))
    return (10 - total % 10) % 10 == int(digits[12])


def is_valid_avs_number(value: str) -> bool:
    """Swiss AVS number: 756 prefix, 13 digits, EAN-13 check digit. Dots are ignored."""
    digits = "".join(c for c in str(value or "") if c in "0123456789")
    if not digits.startswith(AVS_COUNTRY_PREFIX):
        return False
    return _gtin13_ok(digits)


def parse_avs_number(value: str) -> str:
    avs = str(value or "").strip()
    if not is_valid_avs_number(avs):
        raise InvalidInput(f"Invalid AVS number: {avs!r}")
    return avs


def parse_blood_type(value: str) -> BloodType:
    try:
        return BloodType(str(value).strip().upper())
    except ValueError:
        raise InvalidInput(f"Unknown blood type {value!r}") from None


def parse_role(value: str) -> Role:
    wanted = str(value).strip().lower()
    for role in Role:
        if role.value.lower() == wanted:
            return role
    raise InvalidInput(f"Unknown role {value!r}")


def password_problems(password: str, username: str) -> List[str]:
    """List the reasons *password* is too weak; an empty list means it is acceptable."""
    problems = []
    if not (MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH):
        problems.append(
            f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters long."
        )
    if username and username.lower() in password.lower():
        problems.append("Password must not contain the username.")
    if problems:
        return problems

    estimate = zxcvbn(password, user_inputs=[username] if username else [])
    if estimate["score"] < MIN_PASSWORD_SCORE:
        problems.append(f"Password is too easy to guess (strength {estimate['score']}/4).")
        feedback = estimate["feedback"]
        if feedback.get("warning"):
            problems.append(feedback["warning"])
        problems.extend(feedback.get("suggestions", []))
    return problems


def is_strong_password(password: str, username: str) -> bool:
    return not password_problems(password, username)
