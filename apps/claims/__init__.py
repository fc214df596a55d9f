"""
Claims App - In-store Deal Redemption

This app issues short-lived claim codes for deals and walks each claim
through the redemption lifecycle at the vendor's point of sale.

Key Features:
- Unique 6-character claim codes with a 24 hour lifetime
- Vendor-side code verification and transaction completion
- QR code (JSON payload and PNG) for scanning the claim at the counter
- Customer-side redemption with the deal's verification PIN
- Rate-limited PIN attempts with persisted attempt history
- Atomic redemption, savings and vendor counters
- Expiry sweeping via the ``expire_claim_codes`` management command

Lifecycle:
    claimed -> verified -> used
    claimed / verified -> expired (code older than its lifetime)

Architecture:
- Models: DealClaim
- Services: ClaimCodeService
- Views: function-based API views
- Exceptions: APIException hierarchy mapped straight to HTTP responses
"""

__version__ = '1.0.0'
