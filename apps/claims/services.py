"""
Claim Services Module
=====================

This module provides the business logic of the in-store redemption flow:
issuing claim codes, verifying them at the vendor's counter, completing
the transaction, and redeeming a deal with its verification PIN.

Classes:
    ClaimCodeService: Claim code lifecycle (claimed -> verified -> used).

Example:
    Full redemption at the point of sale::

        from decimal import Decimal
        from apps.claims.services import ClaimCodeService

        claim = ClaimCodeService.claim_deal(deal_id=deal.id, user=customer)

        # Customer shows claim.claim_code at the counter
        summary = ClaimCodeService.verify_claim_code(claim.claim_code, vendor)

        result = ClaimCodeService.complete_transaction(
            claim.claim_code,
            bill_amount=Decimal('500.00'),
            actual_discount=Decimal('100.00'),
            vendor=vendor,
        )
        print(f"Customer saved {result['savings']}")
"""

import json
import logging
import secrets
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.accounts.models import User
from apps.accounts.services import record_system_log
from apps.deals.models import Deal, PinAttempt, Vendor
from apps.deals.services import (
    check_rate_limit,
    validate_pin_format,
    verify_pin,
    IncorrectPinError,
    InvalidPinFormatError,
    PinRateLimitedError,
)

from .models import DealClaim, ClaimStatus
from .exceptions import (
    ClaimCodeNotFoundError,
    ClaimCodeExpiredError,
    WrongVendorError,
    ClaimAlreadyUsedError,
    ClaimAlreadyVerifiedError,
    ClaimNotVerifiedError,
    InvalidTransactionAmountError,
    DealNotFoundError,
    DealUnavailableError,
    MembershipUpgradeRequiredError,
    RedemptionLimitReachedError,
    ClaimCodeGenerationError,
)

logger = logging.getLogger(__name__)

QR_PAYLOAD_TYPE = 'instoredealz_claim'


class ClaimCodeService:
    """
    Service for the claim code redemption workflow.

    A claim moves through ``claimed -> verified -> used``. Codes expire
    after ``CLAIM_CODE_TTL`` (24 hours); open claims past their expiry are
    moved to ``expired`` by :meth:`expire_stale_claims`, which runs before
    every verification and completion and from the ``expire_claim_codes``
    management command.

    Every state change is guarded by a row lock on the claim plus a
    conditional UPDATE, so concurrent requests cannot verify or complete
    the same code twice. Redemption and savings counters are incremented
    with ``F()`` expressions inside the database.

    Methods:
        claim_deal: Issue a claim code for a deal.
        verify_claim_code: Vendor checks a code presented at the counter.
        complete_transaction: Vendor records the bill and final discount.
        verify_with_pin: Customer redeems with the deal's verification PIN.
        expire_stale_claims: Bulk-expire open claims past their lifetime.
        get_customer_claims: A customer's claims.
        get_vendor_claims: Claims on a vendor's deals.
    """

    # =========================================================================
    # Claim issuance
    # =========================================================================

    @staticmethod
    def generate_claim_code():
        """Random code of ``CLAIM_CODE_LENGTH`` characters from ``CLAIM_CODE_ALPHABET``."""
        alphabet = settings.CLAIM_CODE_ALPHABET
        return ''.join(secrets.choice(alphabet) for _ in range(settings.CLAIM_CODE_LENGTH))

    @staticmethod
    def normalize_code(claim_code):
        return (claim_code or '').strip().upper()

    @staticmethod
    def claim_deal(deal_id, user, ip_address=None, user_agent=''):
        """
        Issue a claim code for a deal.

        The deal row is locked while capacity is checked, so concurrent
        claims cannot issue more codes than the deal has redemptions left.
        Capacity counts completed redemptions plus claims that are still
        open (claimed or verified and not expired).

        Args:
            deal_id (int): The deal to claim.
            user (User): The claiming customer.
            ip_address (str, optional): Client address for the audit log.
            user_agent (str, optional): Client user agent for the audit log.

        Returns:
            DealClaim: The new claim in ``claimed`` state.

        Raises:
            DealNotFoundError: If the deal doesn't exist.
            DealUnavailableError: If the deal is inactive, unapproved or
                outside its validity window.
            MembershipUpgradeRequiredError: If the user's plan is too low.
            RedemptionLimitReachedError: If no redemptions are left.
            ClaimCodeGenerationError: If no unique code could be allocated.
        """
        now = timezone.now()

        with transaction.atomic():
            try:
                deal = Deal.objects.select_for_update().get(id=deal_id)
            except Deal.DoesNotExist:
                raise DealNotFoundError()

            if not deal.is_available(now):
                raise DealUnavailableError()

            if not deal.allows_membership(user):
                raise MembershipUpgradeRequiredError(
                    f"This deal requires the {deal.get_required_membership_display()} plan."
                )

            if deal.max_redemptions is not None:
                outstanding = DealClaim.objects.filter(deal=deal).open(now).count()
                if deal.current_redemptions + outstanding >= deal.max_redemptions:
                    raise RedemptionLimitReachedError()

            claim = ClaimCodeService._create_claim(deal, user, now)

            record_system_log(
                action='DEAL_CLAIMED',
                user=user,
                details={
                    'deal_id': deal.id,
                    'claim_id': claim.id,
                    'claim_code': claim.claim_code,
                    'expires_at': claim.code_expires_at.isoformat(),
                },
                ip_address=ip_address,
                user_agent=user_agent,
            )

        logger.info("Deal %s claimed by user %s (claim %s)", deal.id, user.id, claim.id)
        return claim

    @staticmethod
    def _create_claim(deal, user, now):
        # Each attempt runs in its own savepoint so a code collision
        # leaves the outer transaction usable.
        for attempt in range(1, settings.CLAIM_CODE_MAX_RETRIES + 1):
            code = ClaimCodeService.generate_claim_code()
            try:
                with transaction.atomic():
                    return DealClaim.objects.create(
                        deal=deal,
                        user=user,
                        claim_code=code,
                        code_expires_at=now + settings.CLAIM_CODE_TTL,
                        claimed_at=now,
                    )
            except IntegrityError:
                logger.warning("Claim code collision on attempt %d", attempt)

        logger.error("Could not allocate a unique claim code for deal %s", deal.id)
        raise ClaimCodeGenerationError()

    @staticmethod
    def build_qr_payload(claim):
        """
        JSON payload encoded in the claim's QR code.

        Scanned at the counter, it carries the claim code so the vendor
        does not have to type it.
        """
        return json.dumps({
            'type': QR_PAYLOAD_TYPE,
            'claimCode': claim.claim_code,
            'dealId': claim.deal_id,
            'customerId': str(claim.user_id),
            'expiresAt': claim.code_expires_at.isoformat(),
        })

    @staticmethod
    def generate_qr_image(claim):
        """
        Render the claim's QR payload as a PNG.

        Args:
            claim (DealClaim): Claim to encode.

        Returns:
            bytes: PNG image data.

        Note:
            Requires the ``qrcode`` library with PIL support.
        """
        import qrcode
        from io import BytesIO

        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(ClaimCodeService.build_qr_payload(claim))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        img.save(buffer, format='PNG')
        return buffer.getvalue()

    # =========================================================================
    # Expiry
    # =========================================================================

    @staticmethod
    def expire_stale_claims(now=None):
        """
        Move open claims past their code lifetime to ``expired``.

        Runs as a single UPDATE in autocommit, so the state change survives
        a verification that then fails with ``ClaimCodeExpiredError``.

        Returns:
            int: Number of claims expired.
        """
        now = now or timezone.now()
        expired = DealClaim.objects.stale(now).update(status=ClaimStatus.EXPIRED)
        if expired:
            logger.info("Expired %d stale claim(s)", expired)
        return expired

    # =========================================================================
    # Vendor verification
    # =========================================================================

    @staticmethod
    def _lock_claim(code):
        try:
            return DealClaim.objects.select_for_update().get(claim_code=code)
        except DealClaim.DoesNotExist:
            raise ClaimCodeNotFoundError()

    @staticmethod
    def verify_claim_code(claim_code, vendor, ip_address=None, user_agent=''):
        """
        Verify a claim code presented at the vendor's counter.

        Args:
            claim_code (str): Code shown by the customer (case-insensitive).
            vendor (Vendor): The verifying vendor.
            ip_address (str, optional): Client address for the audit log.
            user_agent (str, optional): Client user agent for the audit log.

        Returns:
            dict: Verification summary with keys ``claim_id``,
            ``claim_code``, ``customer`` (name, email, membership_plan),
            ``deal`` (id, title, discount_percentage, original_price,
            discounted_price, max_discount), ``claimed_at``,
            ``verified_at`` and ``expires_at``.

        Raises:
            ClaimCodeNotFoundError: If the code doesn't exist.
            ClaimCodeExpiredError: If the code is past its lifetime.
            WrongVendorError: If the deal belongs to another vendor.
            ClaimAlreadyUsedError: If the claim was already redeemed.
            ClaimAlreadyVerifiedError: If the claim was already verified.
        """
        code = ClaimCodeService.normalize_code(claim_code)
        now = timezone.now()
        ClaimCodeService.expire_stale_claims(now)

        with transaction.atomic():
            claim = ClaimCodeService._lock_claim(code)

            if claim.status == ClaimStatus.EXPIRED or claim.is_code_expired(now):
                logger.warning("Expired claim code %s presented to vendor %s", code, vendor.id)
                raise ClaimCodeExpiredError()

            deal = claim.deal
            if deal.vendor_id != vendor.id:
                logger.warning(
                    "Vendor %s tried to verify claim %s of vendor %s",
                    vendor.id, claim.id, deal.vendor_id
                )
                raise WrongVendorError()

            if claim.status == ClaimStatus.USED:
                raise ClaimAlreadyUsedError()
            if claim.status == ClaimStatus.VERIFIED:
                raise ClaimAlreadyVerifiedError()

            updated = DealClaim.objects.filter(
                pk=claim.pk,
                status=ClaimStatus.CLAIMED,
            ).update(
                status=ClaimStatus.VERIFIED,
                vendor_verified=True,
                verified_by=vendor,
                verified_at=now,
            )
            if updated != 1:
                raise ClaimAlreadyVerifiedError()
            claim.refresh_from_db()

            record_system_log(
                action='CLAIM_CODE_VERIFIED',
                user=vendor.user,
                details={
                    'claim_id': claim.id,
                    'claim_code': code,
                    'deal_id': deal.id,
                    'customer_id': str(claim.user_id),
                },
                ip_address=ip_address,
                user_agent=user_agent,
            )

        logger.info("Claim %s verified by vendor %s", claim.id, vendor.id)
        return ClaimCodeService._verification_summary(claim, deal)

    @staticmethod
    def _verification_summary(claim, deal):
        customer = claim.user
        return {
            'claim_id': claim.id,
            'claim_code': claim.claim_code,
            'customer': {
                'name': customer.get_display_name(),
                'email': customer.email,
                'membership_plan': customer.membership_plan,
            },
            'deal': {
                'id': deal.id,
                'title': deal.title,
                'discount_percentage': deal.discount_percentage,
                'original_price': deal.original_price,
                'discounted_price': deal.discounted_price,
                'max_discount': deal.get_max_discount(),
            },
            'claimed_at': claim.claimed_at,
            'verified_at': claim.verified_at,
            'expires_at': claim.code_expires_at,
        }

    # =========================================================================
    # Transaction completion
    # =========================================================================

    @staticmethod
    def _to_decimal(value):
        try:
            amount = Decimal(str(value)).quantize(Decimal('0.01'))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidTransactionAmountError()
        # NaN quantizes silently and breaks ordered comparisons
        if not amount.is_finite():
            raise InvalidTransactionAmountError()
        return amount

    @staticmethod
    def complete_transaction(claim_code, bill_amount, actual_discount, vendor=None,
                             ip_address=None, user_agent=''):
        """
        Complete the purchase for a verified claim.

        In one database transaction the claim moves ``verified -> used``
        with the bill amount and savings, the deal's redemption count is
        incremented only while it is below ``max_redemptions``, and the
        customer's savings and claim counters and the vendor's redemption
        counter are incremented.

        Args:
            claim_code (str): The verified claim code.
            bill_amount (Decimal): Total bill before discount.
            actual_discount (Decimal): Discount granted, in currency units.
            vendor (Vendor, optional): When given, must own the deal.
            ip_address (str, optional): Client address for the audit log.
            user_agent (str, optional): Client user agent for the audit log.

        Returns:
            dict: ``claim_id``, ``claim_code``, ``deal_id``,
            ``bill_amount``, ``savings``, ``final_amount`` and
            ``completed_at``.

        Raises:
            ClaimCodeNotFoundError: If the code doesn't exist.
            ClaimAlreadyUsedError: If the claim was already completed.
            ClaimCodeExpiredError: If the code is past its lifetime.
            WrongVendorError: If ``vendor`` doesn't own the deal.
            ClaimNotVerifiedError: If the claim wasn't verified first.
            InvalidTransactionAmountError: Unless 0 < discount <= bill.
            RedemptionLimitReachedError: If the deal has no redemptions left.
        """
        code = ClaimCodeService.normalize_code(claim_code)
        bill_amount = ClaimCodeService._to_decimal(bill_amount)
        actual_discount = ClaimCodeService._to_decimal(actual_discount)
        now = timezone.now()
        ClaimCodeService.expire_stale_claims(now)

        with transaction.atomic():
            claim = ClaimCodeService._lock_claim(code)

            if claim.status == ClaimStatus.USED:
                raise ClaimAlreadyUsedError()

            if claim.status == ClaimStatus.EXPIRED or claim.is_code_expired(now):
                raise ClaimCodeExpiredError()

            deal = claim.deal
            if vendor is not None and deal.vendor_id != vendor.id:
                raise WrongVendorError()

            if claim.status != ClaimStatus.VERIFIED:
                raise ClaimNotVerifiedError()

            if not (Decimal('0') < actual_discount <= bill_amount):
                raise InvalidTransactionAmountError()

            updated = DealClaim.objects.filter(
                pk=claim.pk,
                status=ClaimStatus.VERIFIED,
            ).update(
                status=ClaimStatus.USED,
                bill_amount=bill_amount,
                actual_savings=actual_discount,
                used_at=now,
            )
            if updated != 1:
                raise ClaimAlreadyUsedError()

            deals = Deal.objects.filter(pk=deal.pk)
            if deal.max_redemptions is not None:
                deals = deals.filter(current_redemptions__lt=F('max_redemptions'))
            if deals.update(current_redemptions=F('current_redemptions') + 1) != 1:
                logger.warning("Deal %s reached its redemption limit", deal.id)
                raise RedemptionLimitReachedError()

            User.objects.filter(pk=claim.user_id).update(
                total_savings=F('total_savings') + actual_discount,
                deals_claimed=F('deals_claimed') + 1,
            )
            Vendor.objects.filter(pk=deal.vendor_id).update(
                total_redemptions=F('total_redemptions') + 1,
            )

            record_system_log(
                action='CLAIM_TRANSACTION_COMPLETED',
                user=vendor.user if vendor is not None else None,
                details={
                    'claim_id': claim.id,
                    'claim_code': code,
                    'deal_id': deal.id,
                    'customer_id': str(claim.user_id),
                    'bill_amount': str(bill_amount),
                    'savings': str(actual_discount),
                },
                ip_address=ip_address,
                user_agent=user_agent,
            )

        logger.info(
            "Claim %s completed: bill %s, savings %s",
            claim.id, bill_amount, actual_discount
        )
        return {
            'claim_id': claim.id,
            'claim_code': code,
            'deal_id': deal.id,
            'bill_amount': bill_amount,
            'savings': actual_discount,
            'final_amount': bill_amount - actual_discount,
            'completed_at': now,
        }

    # =========================================================================
    # PIN redemption
    # =========================================================================

    @staticmethod
    def _record_pin_attempt(deal, user, ip_address, user_agent, success, now):
        return PinAttempt.objects.create(
            deal=deal,
            user=user,
            ip_address=ip_address or None,
            user_agent=(user_agent or '')[:255],
            success=success,
            attempted_at=now,
        )

    @staticmethod
    def verify_with_pin(deal_id, user, pin, ip_address=None, user_agent=''):
        """
        Redeem a deal in store with the verification PIN given by the vendor.

        Attempts are rate limited per deal over the attempts of this user or
        this client address. Every checked attempt is stored as a
        ``PinAttempt`` outside the claim transaction, so failures count
        towards the limit even though the call raises.

        On success the user's most recent open claim for the deal (a new one
        is issued when there is none) becomes ``verified`` and can be
        completed with :meth:`complete_transaction`.

        Args:
            deal_id (int): The deal being redeemed.
            user (User): The customer.
            pin (str): The 4-digit PIN.
            ip_address (str, optional): Client address.
            user_agent (str, optional): Client user agent.

        Returns:
            DealClaim: The verified claim.

        Raises:
            DealNotFoundError: If the deal doesn't exist.
            PinRateLimitedError: If too many attempts were made.
            InvalidPinFormatError: If the PIN is malformed.
            DealUnavailableError: If the deal can't be redeemed now.
            PinExpiredError: If the deal's PIN is past its validity.
            IncorrectPinError: If the PIN doesn't match.
        """
        now = timezone.now()

        try:
            deal = Deal.objects.get(id=deal_id)
        except Deal.DoesNotExist:
            raise DealNotFoundError()

        who = Q(user=user)
        if ip_address:
            who |= Q(ip_address=ip_address)
        attempts = PinAttempt.objects.filter(
            who,
            deal=deal,
            attempted_at__gt=now - timedelta(days=1),
        )
        rate_limit = check_rate_limit(list(attempts), now=now)
        if not rate_limit.allowed:
            logger.warning("PIN attempts rate limited for deal %s, user %s", deal.id, user.id)
            raise PinRateLimitedError(rate_limit.message, next_attempt_at=rate_limit.next_attempt_at)

        try:
            validate_pin_format(pin)
        except InvalidPinFormatError:
            ClaimCodeService._record_pin_attempt(deal, user, ip_address, user_agent, False, now)
            raise

        if not deal.is_available(now):
            raise DealUnavailableError()
        if not deal.has_pin:
            raise DealUnavailableError('This deal cannot be redeemed with a PIN.')

        is_valid = verify_pin(pin, deal.verification_pin, deal.pin_salt, deal.pin_expires_at)
        ClaimCodeService._record_pin_attempt(deal, user, ip_address, user_agent, is_valid, now)

        if not is_valid:
            logger.warning("Incorrect PIN for deal %s by user %s", deal.id, user.id)
            raise IncorrectPinError('Invalid PIN. Please check with the vendor.')

        with transaction.atomic():
            claim = (
                DealClaim.objects.select_for_update()
                .filter(deal=deal, user=user)
                .open(now)
                .order_by('-claimed_at')
                .first()
            )
            if claim is None:
                claim = ClaimCodeService.claim_deal(
                    deal.id, user, ip_address=ip_address, user_agent=user_agent
                )

            if claim.status == ClaimStatus.CLAIMED:
                claim.status = ClaimStatus.VERIFIED
                claim.vendor_verified = True
                claim.verified_by_id = deal.vendor_id
                claim.verified_at = now
                claim.save(update_fields=['status', 'vendor_verified', 'verified_by', 'verified_at'])

                record_system_log(
                    action='DEAL_PIN_VERIFIED',
                    user=user,
                    details={'deal_id': deal.id, 'claim_id': claim.id},
                    ip_address=ip_address,
                    user_agent=user_agent,
                )

        logger.info("Deal %s redeemed with PIN by user %s (claim %s)", deal.id, user.id, claim.id)
        return claim

    # =========================================================================
    # Listings
    # =========================================================================

    @staticmethod
    def get_customer_claims(user, status=None):
        """Claims of a customer, newest first."""
        claims = DealClaim.objects.filter(user=user).select_related('deal', 'deal__vendor')
        if status:
            claims = claims.filter(status=status)
        return claims

    @staticmethod
    def get_vendor_claims(vendor, status=None):
        """Claims on the vendor's deals, newest first."""
        claims = DealClaim.objects.filter(deal__vendor=vendor).select_related('deal', 'user')
        if status:
            claims = claims.filter(status=status)
        return claims
