"""
Domain-specific exceptions for deals app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class DealsServiceError(Exception):
    """Base exception for all deals service errors."""
    pass


class DealNotFoundError(DealsServiceError):
    """Raised when a deal does not exist or is not visible to the caller."""
    pass


class InvalidDealError(DealsServiceError):
    """Raised when deal data breaks a business rule."""
    pass


class VendorNotFoundError(DealsServiceError):
    """Raised when the user has no vendor profile."""
    pass


class VendorAlreadyExistsError(DealsServiceError):
    """Raised when a user registers a second vendor profile."""
    pass


class VendorNotApprovedError(DealsServiceError):
    """Raised when an unapproved vendor tries to publish deals."""
    pass


class DealAlreadyModeratedError(DealsServiceError):
    """Raised when approving or rejecting a deal that was already decided."""
    pass


class PinError(DealsServiceError):
    """Base exception for verification PIN errors."""
    pass


class InvalidPinFormatError(PinError):
    """Raised when a PIN is not 4 digits or matches a weak pattern."""
    pass


class PinExpiredError(PinError):
    """Raised when the hashed PIN is past its expiry date."""
    pass


class IncorrectPinError(PinError):
    """Raised when a well-formed PIN does not match the deal's PIN."""
    pass


class PinRateLimitedError(PinError):
    """Raised when too many PIN attempts were made recently."""

    def __init__(self, message, next_attempt_at=None):
        super().__init__(message)
        self.next_attempt_at = next_attempt_at
