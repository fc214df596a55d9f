import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, MembershipPlan

PASSWORD = 'Deals2024!secure'


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """A basic-plan customer."""
    return User.objects.create_user(
        email='testuser@example.com',
        password=PASSWORD,
        display_name='Test User',
        phone='+91 98200 12345',
    )


@pytest.fixture
def premium_user(db):
    """A premium-plan customer with some redemption history."""
    return User.objects.create_user(
        email='premium@example.com',
        password=PASSWORD,
        membership_plan=MembershipPlan.PREMIUM,
        deals_claimed=3,
    )


@pytest.fixture
def user_inactive(db):
    """A deactivated customer."""
    return User.objects.create_user(
        email='inactive@example.com',
        password=PASSWORD,
        is_active=False,
    )


@pytest.fixture
def authenticated_client(api_client, user):
    """API client carrying a JWT access token for ``user``."""
    access = RefreshToken.for_user(user).access_token
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    return api_client
