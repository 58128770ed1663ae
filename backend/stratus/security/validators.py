"""
Stratus Backend: Input Validators
==================================

What:  Pure predicates for email shape and password strength.
Who:   Request schemas (boundary) and AuthService (before persistence).

Email is a syntactic check only, no DNS/MX lookup:
    local part:  one or more characters, no whitespace, no '@'
    domain:      one or more non-empty dot-separated labels
    TLD:         two or more letters

Password policy: at least 8 characters, with at least one ASCII
uppercase letter, one ASCII lowercase letter and one digit. Classes are
ASCII-only so the result never depends on locale.
"""

import re
from typing import List

EMAIL_PATTERN = re.compile(
    r"^[^\s@]+@(?:[A-Za-z0-9-]+\.)+[A-Za-z]{2,}$"
)

MIN_PASSWORD_LENGTH = 8

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")


def is_valid_email(value: str) -> bool:
    """Accepts local@domain.tld shapes (subdomains, +tags); rejects everything else."""
    if not isinstance(value, str) or not value:
        return False
    return EMAIL_PATTERN.fullmatch(value) is not None


def password_strength_errors(value: str) -> List[str]:
    """Every unmet clause of the password policy, in a stable order."""
    if not isinstance(value, str):
        return ["Password must be a string"]

    errors = []
    if len(value) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not _UPPER.search(value):
        errors.append("Password must contain at least one uppercase letter")
    if not _LOWER.search(value):
        errors.append("Password must contain at least one lowercase letter")
    if not _DIGIT.search(value):
        errors.append("Password must contain at least one number")
    return errors


def is_strong_password(value: str) -> bool:
    return not password_strength_errors(value)


def normalize_email(value: str) -> str:
    """Storage form of an email: trimmed and lowercased."""
    return value.strip().lower()
