import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, UserRole
from apps.deals.models import Vendor, Deal, DealType, DealCategory
from apps.deals.services import hash_pin


DEAL_PIN = '4829'


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
    """Create and return a customer."""
    return User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Deal Hunter',
    )


@pytest.fixture
def vendor_user(db):
    """Create and return a user owning an approved vendor profile."""
    return User.objects.create_user(
        email='vendor@example.com',
        password='TestPass123!',
        display_name='Shop Owner',
        role=UserRole.VENDOR,
    )


@pytest.fixture
def vendor(vendor_user):
    """Approved vendor profile."""
    return Vendor.objects.create(
        user=vendor_user,
        business_name='Corner Electronics',
        city='Mumbai',
        state='Maharashtra',
        pincode='400001',
        is_approved=True,
    )


@pytest.fixture
def pending_vendor(db):
    """Vendor profile still waiting for approval."""
    user = User.objects.create_user(
        email='newshop@example.com',
        password='TestPass123!',
        role=UserRole.VENDOR,
    )
    return Vendor.objects.create(
        user=user,
        business_name='New Shop',
        city='Pune',
        state='Maharashtra',
        pincode='411001',
    )


@pytest.fixture
def other_vendor(db):
    """A second approved vendor."""
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
def admin_user(db):
    """Create and return a marketplace admin."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        role=UserRole.ADMIN,
    )


@pytest.fixture
def customer_client(customer):
    return _client_for(customer)


@pytest.fixture
def vendor_client(vendor):
    return _client_for(vendor.user)


@pytest.fixture
def pending_vendor_client(pending_vendor):
    return _client_for(pending_vendor.user)


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def make_deal(db):
    """Factory for approved, active offline deals protected by DEAL_PIN."""

    def _make_deal(vendor, pin=DEAL_PIN, **kwargs):
        now = timezone.now()
        hashed = hash_pin(pin)
        defaults = {
            'title': '20% off headphones',
            'description': 'All wired and wireless headphones.',
            'category': DealCategory.ELECTRONICS,
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
def pending_deal(vendor, make_deal):
    """A deal waiting for moderation."""
    return make_deal(vendor, title='Pending deal', is_approved=False)
