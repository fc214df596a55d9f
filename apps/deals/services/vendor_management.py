"""
Vendor management service.

Handles vendor onboarding and approval.
"""

import logging

from django.db import transaction

from apps.accounts.models import User, UserRole
from apps.deals.models import Vendor

from .exceptions import VendorAlreadyExistsError, VendorNotFoundError

logger = logging.getLogger(__name__)


@transaction.atomic
def register_vendor(
    *,
    user: User,
    business_name: str,
    city: str,
    state: str,
    pincode: str,
    address: str = "",
    description: str = ""
) -> Vendor:
    """
    Create a vendor profile for a user and switch the user to the vendor role.

    The profile starts unapproved; an admin must approve it before the
    vendor can publish deals.

    Raises:
        VendorAlreadyExistsError: If the user already has a vendor profile
    """
    user = User.objects.select_for_update().get(pk=user.pk)

    if Vendor.objects.filter(user=user).exists():
        raise VendorAlreadyExistsError("User already has a vendor profile")

    vendor = Vendor.objects.create(
        user=user,
        business_name=business_name,
        city=city,
        state=state,
        pincode=pincode,
        address=address,
        description=description,
    )

    if user.role != UserRole.ADMIN:
        user.role = UserRole.VENDOR
        user.save(update_fields=['role'])

    logger.info("Vendor %s registered for user %s", vendor.id, user.id)
    return vendor


@transaction.atomic
def approve_vendor(*, vendor_id: int) -> Vendor:
    """
    Approve a vendor profile.

    Raises:
        VendorNotFoundError: If the vendor doesn't exist
    """
    try:
        vendor = Vendor.objects.select_for_update().get(id=vendor_id)
    except Vendor.DoesNotExist:
        raise VendorNotFoundError(f"Vendor with ID {vendor_id} not found")

    if not vendor.is_approved:
        vendor.is_approved = True
        vendor.save(update_fields=['is_approved', 'updated_at'])
        logger.info("Vendor %s approved", vendor.id)

    return vendor


def get_vendor_for_user(user: User) -> Vendor:
    """
    Return the vendor profile of a user.

    Raises:
        VendorNotFoundError: If the user is not a vendor
    """
    try:
        return Vendor.objects.get(user=user)
    except Vendor.DoesNotExist:
        raise VendorNotFoundError("Vendor profile not found")
