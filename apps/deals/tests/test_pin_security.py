import pytest
from datetime import timedelta
from unittest.mock import patch
from django.utils import timezone
from apps.deals.models import PinAttempt
from apps.deals.services import (
    validate_pin_format,
    hash_pin,
    verify_pin,
    generate_secure_pin,
    check_rate_limit,
    InvalidPinFormatError,
    PinExpiredError,
)


# =============================================================================
# Format validation
# =============================================================================

class TestValidatePinFormat:

    @pytest.mark.parametrize('pin', ['4829', '1357', '0470', '1123', '1212', '9071'])
    def test_accepts_strong_pins(self, pin):
        assert validate_pin_format(pin) == pin

    def test_strips_whitespace(self):
        assert validate_pin_format(' 4829 ') == '4829'

    def test_accepts_integer_input(self):
        assert validate_pin_format(4829) == '4829'

    @pytest.mark.parametrize('pin', [None, '', '123', '12345'])
    def test_rejects_wrong_length(self, pin):
        with pytest.raises(InvalidPinFormatError):
            validate_pin_format(pin)

    @pytest.mark.parametrize('pin', ['12a4', '48.9', '48 9', '-482', '４８２９'])
    def test_rejects_non_digits(self, pin):
        with pytest.raises(InvalidPinFormatError):
            validate_pin_format(pin)

    @pytest.mark.parametrize('pin', ['1111', '0000', '1112', '2111', '7770'])
    def test_rejects_repeated_digits(self, pin):
        with pytest.raises(InvalidPinFormatError):
            validate_pin_format(pin)

    @pytest.mark.parametrize('pin', ['0123', '1234', '5678', '6789', '9876', '4321', '3210'])
    def test_rejects_sequences(self, pin):
        with pytest.raises(InvalidPinFormatError, match='sequential'):
            validate_pin_format(pin)


# =============================================================================
# Hashing & verification
# =============================================================================

class TestHashAndVerify:

    def test_verify_original_pin(self):
        hashed = hash_pin('4829')

        assert verify_pin('4829', hashed.hashed_pin, hashed.salt) is True

    @pytest.mark.parametrize('other', ['4828', '9284', '1357', '0470'])
    def test_verify_other_pin_fails(self, other):
        hashed = hash_pin('4829')

        assert verify_pin(other, hashed.hashed_pin, hashed.salt) is False

    def test_same_pin_gets_fresh_salt(self):
        first = hash_pin('4829')
        second = hash_pin('4829')

        assert first.salt != second.salt
        assert first.hashed_pin != second.hashed_pin

    def test_hash_expires_after_90_days(self):
        before = timezone.now()
        hashed = hash_pin('4829')

        assert before + timedelta(days=89) < hashed.expires_at <= timezone.now() + timedelta(days=90)

    def test_hash_rejects_weak_pin(self):
        with pytest.raises(InvalidPinFormatError):
            hash_pin('1234')

    def test_verify_expired_pin(self):
        hashed = hash_pin('4829')
        expired = timezone.now() - timedelta(seconds=1)

        with pytest.raises(PinExpiredError):
            verify_pin('4829', hashed.hashed_pin, hashed.salt, expired)

    def test_verify_before_expiry(self):
        hashed = hash_pin('4829')

        assert verify_pin('4829', hashed.hashed_pin, hashed.salt, hashed.expires_at) is True

    def test_verify_malformed_pin(self):
        hashed = hash_pin('4829')

        with pytest.raises(InvalidPinFormatError):
            verify_pin('48', hashed.hashed_pin, hashed.salt)


# =============================================================================
# Generation
# =============================================================================

class TestGenerateSecurePin:

    def test_generated_pins_are_valid(self):
        for _ in range(50):
            pin = generate_secure_pin()
            assert validate_pin_format(pin) == pin

    def test_falls_back_when_random_pins_are_weak(self):
        # Every random candidate becomes 1111
        with patch('apps.deals.services.pin_security.secrets.randbelow', return_value=1):
            pin = generate_secure_pin()

        assert pin == '1368'
        assert validate_pin_format(pin) == pin


# =============================================================================
# Rate limiting
# =============================================================================

def _attempts(now, minutes_ago, success=False):
    return [
        PinAttempt(success=success, attempted_at=now - timedelta(minutes=m))
        for m in minutes_ago
    ]


class TestCheckRateLimit:

    def test_no_history_is_allowed(self):
        result = check_rate_limit([])

        assert result.allowed is True
        assert result.next_attempt_at is None

    def test_four_failures_in_hour_allowed(self):
        now = timezone.now()
        result = check_rate_limit(_attempts(now, [5, 10, 15, 20]), now=now)

        assert result.allowed is True

    def test_five_failures_in_hour_denied(self):
        now = timezone.now()
        attempts = _attempts(now, [5, 10, 15, 20, 50])
        result = check_rate_limit(attempts, now=now)

        assert result.allowed is False
        assert result.next_attempt_at == now - timedelta(minutes=50) + timedelta(hours=1)

    def test_failures_older_than_hour_do_not_lock(self):
        now = timezone.now()
        result = check_rate_limit(_attempts(now, [61, 70, 80, 90, 100]), now=now)

        assert result.allowed is True

    def test_successes_do_not_count_towards_hourly_limit(self):
        now = timezone.now()
        attempts = _attempts(now, [1, 2, 3, 4, 5], success=True)
        result = check_rate_limit(attempts, now=now)

        assert result.allowed is True

    def test_ten_attempts_in_day_denied(self):
        now = timezone.now()
        hours = [2, 3, 4, 5, 6, 7, 8, 9, 10, 20]
        attempts = _attempts(now, [h * 60 for h in hours], success=True)
        result = check_rate_limit(attempts, now=now)

        assert result.allowed is False
        assert result.next_attempt_at == now - timedelta(hours=20) + timedelta(days=1)

    def test_nine_attempts_in_day_allowed(self):
        now = timezone.now()
        attempts = _attempts(now, [h * 60 for h in range(2, 11)], success=True)
        result = check_rate_limit(attempts, now=now)

        assert result.allowed is True

    def test_attempts_older_than_day_ignored(self):
        now = timezone.now()
        attempts = _attempts(now, [25 * 60 + m for m in range(10)])
        result = check_rate_limit(attempts, now=now)

        assert result.allowed is True

    def test_hourly_lockout_takes_precedence(self):
        now = timezone.now()
        attempts = (
            _attempts(now, [1, 2, 3, 4, 30])
            + _attempts(now, [h * 60 for h in range(2, 7)], success=True)
        )
        result = check_rate_limit(attempts, now=now)

        assert result.allowed is False
        assert 'failed' in result.message
        assert result.next_attempt_at == now - timedelta(minutes=30) + timedelta(hours=1)
