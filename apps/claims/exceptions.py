"""
Domain exceptions for claims app.

Claim workflow errors are APIException subclasses, so a service error
raised inside a view becomes a JSON response with the right status code
without extra translation.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class ClaimCodeNotFoundError(APIException):
    """Claim code does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Invalid claim code.'
    default_code = 'claim_code_not_found'


class ClaimCodeExpiredError(APIException):
    """Claim code is past its lifetime."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Claim code has expired.'
    default_code = 'claim_code_expired'


class WrongVendorError(APIException):
    """Claim belongs to a deal of another vendor."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'This claim code is not valid for your store.'
    default_code = 'wrong_vendor'


class ClaimAlreadyUsedError(APIException):
    """Claim was already redeemed."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Claim code has already been used.'
    default_code = 'claim_already_used'


class ClaimAlreadyVerifiedError(ClaimAlreadyUsedError):
    """Claim was already verified and is waiting for completion."""
    default_detail = 'Claim code has already been verified.'
    default_code = 'claim_already_verified'


class ClaimNotVerifiedError(APIException):
    """Transaction completion requires a verified claim."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Claim code must be verified before completing the transaction.'
    default_code = 'claim_not_verified'


class InvalidTransactionAmountError(APIException):
    """Bill amount or discount is not acceptable."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Discount must be positive and cannot exceed the bill amount.'
    default_code = 'invalid_transaction_amount'


class DealNotFoundError(APIException):
    """Deal does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Deal not found.'
    default_code = 'deal_not_found'


class DealUnavailableError(APIException):
    """Deal is inactive, unapproved or outside its validity window."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Deal is not available.'
    default_code = 'deal_unavailable'


class MembershipUpgradeRequiredError(APIException):
    """User's membership plan is below the deal's requirement."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Membership upgrade required to claim this deal.'
    default_code = 'membership_upgrade_required'


class RedemptionLimitReachedError(APIException):
    """Deal has no redemptions left."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Deal has reached its maximum redemptions.'
    default_code = 'redemption_limit_reached'


class ClaimCodeGenerationError(APIException):
    """No unique claim code could be allocated."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Could not allocate a claim code. Please try again.'
    default_code = 'claim_code_generation_failed'
