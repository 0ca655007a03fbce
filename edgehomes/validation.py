"""
Form checks that run before anything is sent to the backend.

Each validator returns a list of human readable messages; an empty list means
the form may be submitted.
"""
import re
from typing import List

from .constants import COMMON_PASSWORD_PATTERN, EMAIL_PATTERN, OTP_LENGTH, PHONE_PATTERN
from .enums import Role

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_LETTER = re.compile(r"[a-zA-Z]")
_DIGIT = re.compile(r"\d")
_SPECIAL = re.compile(r"[!@#$%^&*]")

ADMIN_MIN_PASSWORD_LENGTH = 12
USER_MIN_PASSWORD_LENGTH = 8


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_PATTERN.match(value or ""))


def validate_sign_in(email: str, password: str) -> List[str]:
    errors = []
    if not email:
        errors.append("Email is required")
    elif not is_valid_email(email):
        errors.append("Email must be a valid email address")
    if not password:
        errors.append("Password is required")
    return errors


def validate_sign_up(name: str, email: str, phone: str, password: str, confirm_password: str) -> List[str]:
    errors = []
    if len(name.strip()) < 6:
        errors.append("Name must not be less than 6 characters")
    if not is_valid_email(email):
        errors.append("Email must be a valid email address")
    if not is_valid_phone(phone):
        errors.append("Phone number must be valid")
    if len(password) <= 6:
        errors.append("Password must not be less than 6 characters")
    if password != confirm_password:
        errors.append("Password doesn't match")
    return errors


def validate_new_password(password: str, role: Role) -> List[str]:
    errors = []
    if role == Role.ADMIN:
        if len(password) < ADMIN_MIN_PASSWORD_LENGTH:
            errors.append("Admin passwords must be at least 12 characters long")
        if not _LOWER.search(password):
            errors.append("Include at least one lowercase letter")
        if not _UPPER.search(password):
            errors.append("Include at least one uppercase letter")
        if not _DIGIT.search(password):
            errors.append("Include at least one number")
        if not _SPECIAL.search(password):
            errors.append("Include at least one special character (!@#$%^&*)")
    else:
        if len(password) < USER_MIN_PASSWORD_LENGTH:
            errors.append("Password must be at least 8 characters long")
        if not _LETTER.search(password):
            errors.append("Include at least one letter")
        if not _DIGIT.search(password):
            errors.append("Include at least one number")

    if COMMON_PASSWORD_PATTERN.search(password):
        errors.append("Avoid common or easily guessable passwords")
    return errors


def validate_reset_password(password: str, confirm_password: str, role: Role) -> List[str]:
    errors = validate_new_password(password, role)
    if password != confirm_password:
        errors.append("Passwords do not match")
    return errors


def password_strength(password: str, role: Role) -> int:
    """Score from 0 to 100 driving the strength meter."""
    minimum = ADMIN_MIN_PASSWORD_LENGTH if role == Role.ADMIN else USER_MIN_PASSWORD_LENGTH
    strength = 0
    if len(password) >= minimum:
        strength += 25
    if _LOWER.search(password):
        strength += 25
    if _UPPER.search(password):
        strength += 25
    if _DIGIT.search(password):
        strength += 15
    if _SPECIAL.search(password):
        strength += 10
    return min(strength, 100)


def strength_label(strength: int) -> str:
    if strength < 40:
        return "Weak"
    if strength < 70:
        return "Fair"
    if strength < 85:
        return "Good"
    return "Strong"


def validate_otp(code: str) -> List[str]:
    if len(code) != OTP_LENGTH or not code.isdigit():
        return [f"Please enter all {OTP_LENGTH} digits"]
    return []


def resend_wait_seconds(sent_at: float, now: float, cooldown: int) -> int:
    """Seconds left before another code may be requested; 0 when allowed."""
    remaining = int(sent_at + cooldown - now)
    return max(remaining, 0)
