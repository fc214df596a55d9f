"""
Deal management service.

Handles deal creation, moderation and verification PIN rotation.
All PINs are stored hashed; the plain PIN is returned to the vendor once.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User, MembershipPlan
from apps.deals.models import Deal, DealType, DealCategory, Vendor

from .exceptions import (
    DealNotFoundError,
    InvalidDealError,
    VendorNotApprovedError,
    DealAlreadyModeratedError,
)
from .pin_security import hash_pin, generate_secure_pin

logger = logging.getLogger(__name__)


def _apply_pin(deal: Deal, pin: Optional[str]) -> str:
    """Hash ``pin`` (or a generated one) onto the deal; return the plain PIN."""
    plain_pin = pin if pin else generate_secure_pin()
    hashed = hash_pin(plain_pin)

    deal.verification_pin = hashed.hashed_pin
    deal.pin_salt = hashed.salt
    deal.pin_created_at = timezone.now()
    deal.pin_expires_at = hashed.expires_at
    return plain_pin.strip()


@transaction.atomic
def create_deal(
    *,
    vendor: Vendor,
    title: str,
    description: str,
    discount_percentage: int,
    valid_until: datetime,
    category: str = DealCategory.OTHER,
    deal_type: str = DealType.OFFLINE,
    affiliate_link: str = "",
    valid_from: Optional[datetime] = None,
    max_redemptions: Optional[int] = None,
    original_price: Optional[Decimal] = None,
    required_membership: str = MembershipPlan.BASIC,
    verification_pin: Optional[str] = None
) -> Tuple[Deal, Optional[str]]:
    """
    Create a deal awaiting admin approval.

    Offline deals always get a hashed verification PIN: the supplied one,
    or a generated one when none is given.

    Args:
        vendor: Approved vendor publishing the deal
        title: Deal title
        description: Deal description
        discount_percentage: Discount between 1 and 100
        valid_until: End of validity window
        category: Deal category
        deal_type: 'offline' (in-store) or 'online' (affiliate link)
        affiliate_link: Required for online deals
        valid_from: Start of validity window, defaults to now
        max_redemptions: Optional cap on completed redemptions
        original_price: Optional list price, used to derive discounted price
        required_membership: Minimum membership plan to claim
        verification_pin: Optional vendor-chosen PIN

    Returns:
        Tuple of (created Deal, plain PIN or None for online deals)

    Raises:
        VendorNotApprovedError: If vendor is not approved
        InvalidDealError: If the deal data is inconsistent
        InvalidPinFormatError: If the supplied PIN is weak or malformed
    """
    if not vendor.is_approved:
        raise VendorNotApprovedError("Vendor must be approved before publishing deals")

    valid_from = valid_from or timezone.now()
    if valid_until <= valid_from:
        raise InvalidDealError("Deal must end after it starts")

    if not 1 <= int(discount_percentage) <= 100:
        raise InvalidDealError("Discount percentage must be between 1 and 100")

    if deal_type == DealType.ONLINE and not affiliate_link:
        raise InvalidDealError("Online deals require an affiliate link")

    discounted_price = None
    if original_price is not None:
        discounted_price = (
            original_price * (Decimal('100') - Decimal(discount_percentage)) / Decimal('100')
        ).quantize(Decimal('0.01'))

    deal = Deal(
        vendor=vendor,
        title=title,
        description=description,
        category=category,
        deal_type=deal_type,
        affiliate_link=affiliate_link,
        discount_percentage=discount_percentage,
        original_price=original_price,
        discounted_price=discounted_price,
        valid_from=valid_from,
        valid_until=valid_until,
        max_redemptions=max_redemptions,
        required_membership=required_membership,
    )

    plain_pin = None
    if deal_type == DealType.OFFLINE or verification_pin:
        plain_pin = _apply_pin(deal, verification_pin)

    deal.save()

    logger.info("Deal %s created by vendor %s", deal.id, vendor.id)
    return deal, plain_pin


def get_deal_for_vendor(*, deal_id: int, vendor: Vendor, lock: bool = False) -> Deal:
    """
    Return a deal owned by the vendor.

    Raises:
        DealNotFoundError: If the deal doesn't exist or belongs to another vendor
    """
    queryset = Deal.objects.select_for_update() if lock else Deal.objects
    try:
        return queryset.get(id=deal_id, vendor=vendor)
    except Deal.DoesNotExist:
        raise DealNotFoundError(f"Deal with ID {deal_id} not found")


@transaction.atomic
def reset_deal_pin(*, deal_id: int, vendor: Vendor, pin: Optional[str] = None) -> str:
    """
    Replace a deal's verification PIN.

    Returns:
        The new plain PIN. It cannot be retrieved again later.

    Raises:
        DealNotFoundError: If the vendor doesn't own the deal
        InvalidPinFormatError: If the supplied PIN is weak or malformed
    """
    deal = get_deal_for_vendor(deal_id=deal_id, vendor=vendor, lock=True)
    plain_pin = _apply_pin(deal, pin)
    deal.save(update_fields=[
        'verification_pin',
        'pin_salt',
        'pin_created_at',
        'pin_expires_at',
        'updated_at',
    ])

    logger.info("Verification PIN rotated for deal %s", deal.id)
    return plain_pin


def _lock_deal_for_moderation(deal_id: int) -> Deal:
    try:
        deal = Deal.objects.select_for_update().get(id=deal_id)
    except Deal.DoesNotExist:
        raise DealNotFoundError(f"Deal with ID {deal_id} not found")

    if deal.is_approved or deal.is_rejected:
        raise DealAlreadyModeratedError("Deal has already been reviewed")
    return deal


@transaction.atomic
def approve_deal(*, deal_id: int, admin: User) -> Deal:
    """
    Approve a pending deal so customers can claim it.

    Raises:
        DealNotFoundError: If the deal doesn't exist
        DealAlreadyModeratedError: If the deal was already approved or rejected
    """
    deal = _lock_deal_for_moderation(deal_id)
    deal.is_approved = True
    deal.approved_by = admin
    deal.save(update_fields=['is_approved', 'approved_by', 'updated_at'])

    logger.info("Deal %s approved by %s", deal.id, admin.id)
    return deal


@transaction.atomic
def reject_deal(*, deal_id: int, admin: User, reason: str = "") -> Deal:
    """
    Reject a pending deal.

    Raises:
        DealNotFoundError: If the deal doesn't exist
        DealAlreadyModeratedError: If the deal was already approved or rejected
    """
    deal = _lock_deal_for_moderation(deal_id)
    deal.is_rejected = True
    deal.is_active = False
    deal.rejection_reason = reason
    deal.save(update_fields=['is_rejected', 'is_active', 'rejection_reason', 'updated_at'])

    logger.info("Deal %s rejected by %s", deal.id, admin.id)
    return deal
