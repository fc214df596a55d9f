import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, UserRole
from apps.deals.models import Vendor, Deal, DealType
from apps.deals.services import hash_pin
from apps.claims.services import ClaimCodeService


DEAL_PIN = '4829'
WRONG_PIN = '9071'


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def customer(db):
    """Create and return a customer on the basic plan."""
    return User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Asha Rao',
    )


@pytest.fixture
def other_customer(db):
    """Create and return a second customer."""
    return User.objects.create_user(
        email='second@example.com',
        password='TestPass123!',
        display_name='Ravi Kumar',
    )


@pytest.fixture
def vendor(db):
    """Approved vendor owning the test deals."""
    user = User.objects.create_user(
        email='vendor@example.com',
        password='TestPass123!',
        role=UserRole.VENDOR,
    )
    return Vendor.objects.create(
        user=user,
        business_name='Corner Electronics',
        city='Mumbai',
        state='Maharashtra',
        pincode='400001',
        is_approved=True,
    )


@pytest.fixture
def other_vendor(db):
    """Approved vendor that does not own the test deals."""
    user = User.objects.create_user(
        email='rival@example.com',
        password='TestPass123!',
        role=UserRole.VENDOR,
    )
    return Vendor.objects.create(
        user=user,
        business_name='Rival Store',
        city='Delhi',
        state='Delhi',
        pincode='110001',
        is_approved=True,
    )


@pytest.fixture
def customer_client(customer):
    return _client_for(customer)


@pytest.fixture
def other_customer_client(other_customer):
    return _client_for(other_customer)


@pytest.fixture
def vendor_client(vendor):
    return _client_for(vendor.user)


@pytest.fixture
def other_vendor_client(other_vendor):
    return _client_for(other_vendor.user)


@pytest.fixture
def make_deal(db):
    """Factory for approved, active offline deals protected by DEAL_PIN."""

    def _make_deal(vendor, pin=DEAL_PIN, **kwargs):
        now = timezone.now()
        hashed = hash_pin(pin)
        defaults = {
            'title': '20% off headphones',
            'description': 'All wired and wireless headphones.',
            'deal_type': DealType.OFFLINE,
            'discount_percentage': 20,
            'original_price': Decimal('2500.00'),
            'discounted_price': Decimal('2000.00'),
            'valid_from': now - timedelta(days=1),
            'valid_until': now + timedelta(days=30),
            'is_approved': True,
            'verification_pin': hashed.hashed_pin,
            'pin_salt': hashed.salt,
            'pin_created_at': now,
            'pin_expires_at': hashed.expires_at,
        }
        defaults.update(kwargs)
        return Deal.objects.create(vendor=vendor, **defaults)

    return _make_deal


@pytest.fixture
def deal(vendor, make_deal):
    """An approved offline deal of ``vendor``."""
    return make_deal(vendor)


@pytest.fixture
def claim(deal, customer):
    """A fresh claim of ``customer`` on ``deal``."""
    return ClaimCodeService.claim_deal(deal.id, customer)


@pytest.fixture
def verified_claim(claim, vendor):
    """``claim`` after verification by the owning vendor."""
    ClaimCodeService.verify_claim_code(claim.claim_code, vendor)
    claim.refresh_from_db()
    return claim
