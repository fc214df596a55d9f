"""
Verification PIN security utilities.

Pure functions for validating, hashing, verifying and generating the
4-digit PINs vendors hand out for in-store redemption, plus the attempt
rate limiter. Tunables (length, weak patterns, limits) come from settings.
"""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.contrib.auth.hashers import make_password, check_password
from django.utils import timezone

from .exceptions import InvalidPinFormatError, PinExpiredError


@dataclass(frozen=True)
class HashedPin:
    hashed_pin: str
    salt: str
    expires_at: datetime


@dataclass(frozen=True)
class RateLimitStatus:
    allowed: bool
    message: str
    next_attempt_at: Optional[datetime] = None


def _weak_patterns():
    return [re.compile(pattern) for pattern in settings.PIN_WEAK_PATTERNS]


def validate_pin_format(pin) -> str:
    """
    Check that a PIN is safe to use and return it stripped.

    A PIN must be exactly ``PIN_LENGTH`` digits, contain at least
    ``PIN_MIN_UNIQUE_DIGITS`` distinct digits and match none of the
    ``PIN_WEAK_PATTERNS``.

    Raises:
        InvalidPinFormatError: With a user-facing message.
    """
    clean_pin = str(pin if pin is not None else '').strip()
    length = settings.PIN_LENGTH

    if len(clean_pin) != length:
        raise InvalidPinFormatError(f"PIN must be exactly {length} digits")

    if not (clean_pin.isascii() and clean_pin.isdigit()):
        raise InvalidPinFormatError("PIN must contain only numbers")

    min_unique = settings.PIN_MIN_UNIQUE_DIGITS
    if len(set(clean_pin)) < min_unique:
        raise InvalidPinFormatError(
            f"PIN must contain at least {min_unique} different digits"
        )

    for pattern in _weak_patterns():
        if pattern.search(clean_pin):
            raise InvalidPinFormatError(
                "PIN cannot contain repeated or sequential patterns"
            )

    return clean_pin


def hash_pin(pin) -> HashedPin:
    """
    Validate and hash a PIN with a fresh random salt.

    The salted PIN goes through Django's password hasher (PBKDF2 by
    default), so brute-forcing the 10k PIN space stays slow.

    Raises:
        InvalidPinFormatError: If the PIN is not acceptable.
    """
    clean_pin = validate_pin_format(pin)
    salt = secrets.token_hex(16)

    return HashedPin(
        hashed_pin=make_password(clean_pin + salt),
        salt=salt,
        expires_at=timezone.now() + settings.PIN_VALIDITY,
    )


def verify_pin(pin, hashed_pin: str, salt: str, expires_at: Optional[datetime] = None) -> bool:
    """
    Check a PIN against its stored hash.

    Returns:
        True when the PIN matches.

    Raises:
        PinExpiredError: If ``expires_at`` has passed.
        InvalidPinFormatError: If the PIN is malformed.
    """
    if expires_at is not None and timezone.now() > expires_at:
        raise PinExpiredError(
            "PIN has expired. Please request a new PIN from the vendor."
        )

    clean_pin = validate_pin_format(pin)
    return check_password(clean_pin + (salt or ''), hashed_pin)


def _fallback_pin() -> str:
    # Offsets 0, 2, 5, 7 give four distinct, non-sequential digits
    start = secrets.randbelow(10)
    return ''.join(str((start + offset) % 10) for offset in (0, 2, 5, 7))


def generate_secure_pin() -> str:
    """Generate a random PIN that passes validate_pin_format."""
    for _ in range(settings.PIN_GENERATION_MAX_ATTEMPTS):
        pin = ''.join(str(secrets.randbelow(10)) for _ in range(settings.PIN_LENGTH))
        try:
            return validate_pin_format(pin)
        except InvalidPinFormatError:
            continue

    return _fallback_pin()


def check_rate_limit(attempts: Iterable, now: Optional[datetime] = None) -> RateLimitStatus:
    """
    Decide whether another PIN attempt is allowed.

    Args:
        attempts: Objects with ``attempted_at`` and ``success`` attributes
            (e.g. PinAttempt rows), in any order.
        now: Reference time, defaults to the current time.

    Returns:
        RateLimitStatus. When not allowed, ``next_attempt_at`` is the oldest
        qualifying attempt plus the lockout window.
    """
    now = now or timezone.now()
    one_hour_ago = now - timedelta(hours=1)
    one_day_ago = now - timedelta(days=1)

    attempts_last_day = [a for a in attempts if a.attempted_at > one_day_ago]
    failed_last_hour = [
        a for a in attempts_last_day
        if a.attempted_at > one_hour_ago and not a.success
    ]

    if len(failed_last_hour) >= settings.PIN_MAX_FAILED_ATTEMPTS_PER_HOUR:
        oldest = min(a.attempted_at for a in failed_last_hour)
        next_attempt_at = oldest + settings.PIN_LOCKOUT
        return RateLimitStatus(
            allowed=False,
            message=(
                "Too many failed PIN attempts. Please try again after "
                f"{next_attempt_at:%H:%M} UTC."
            ),
            next_attempt_at=next_attempt_at,
        )

    if len(attempts_last_day) >= settings.PIN_MAX_ATTEMPTS_PER_DAY:
        oldest = min(a.attempted_at for a in attempts_last_day)
        return RateLimitStatus(
            allowed=False,
            message="Daily PIN attempt limit exceeded. Please try again tomorrow.",
            next_attempt_at=oldest + timedelta(days=1),
        )

    return RateLimitStatus(allowed=True, message="PIN attempt allowed")
