"""Exceptions raised by the account services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class UserRegistrationError(AccountsServiceError):
    """Raised when a customer account cannot be created."""
    pass


class EmailAlreadyRegisteredError(UserRegistrationError):
    """Raised when the email belongs to an existing account (case-insensitive)."""
    pass


class InvalidCredentialsError(AccountsServiceError):
    """Raised when the email is unknown or the password does not match."""
    pass


class InactiveAccountError(AccountsServiceError):
    """Raised when a deactivated customer or vendor tries to log in."""
    pass
