"""
Deals app services layer.

Services contain business logic and orchestrate operations across models.
State-changing operations run in transactions with row-level locks.
"""

from .exceptions import (
    DealsServiceError,
    DealNotFoundError,
    InvalidDealError,
    VendorNotFoundError,
    VendorAlreadyExistsError,
    VendorNotApprovedError,
    DealAlreadyModeratedError,
    PinError,
    InvalidPinFormatError,
    PinExpiredError,
    IncorrectPinError,
    PinRateLimitedError,
)

from .pin_security import (
    HashedPin,
    RateLimitStatus,
    validate_pin_format,
    hash_pin,
    verify_pin,
    generate_secure_pin,
    check_rate_limit,
)

from .vendor_management import (
    register_vendor,
    approve_vendor,
    get_vendor_for_user,
)

from .deal_management import (
    create_deal,
    get_deal_for_vendor,
    reset_deal_pin,
    approve_deal,
    reject_deal,
)


__all__ = [
    # Exceptions
    'DealsServiceError',
    'DealNotFoundError',
    'InvalidDealError',
    'VendorNotFoundError',
    'VendorAlreadyExistsError',
    'VendorNotApprovedError',
    'DealAlreadyModeratedError',
    'PinError',
    'InvalidPinFormatError',
    'PinExpiredError',
    'IncorrectPinError',
    'PinRateLimitedError',

    # PIN security
    'HashedPin',
    'RateLimitStatus',
    'validate_pin_format',
    'hash_pin',
    'verify_pin',
    'generate_secure_pin',
    'check_rate_limit',

    # Vendor management
    'register_vendor',
    'approve_vendor',
    'get_vendor_for_user',

    # Deal management
    'create_deal',
    'get_deal_for_vendor',
    'reset_deal_pin',
    'approve_deal',
    'reject_deal',
]
