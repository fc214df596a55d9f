import pytest
from datetime import timedelta
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from apps.deals.models import Deal, DealType, DealCategory, Vendor
from apps.deals.services import verify_pin


# =============================================================================
# Public catalogue
# =============================================================================

@pytest.mark.django_db
class TestDealList:
    """Tests for GET /api/deals/"""

    def test_list_is_public(self, api_client, deal):
        url = reverse('deals:deal-list')
        response = api_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        ids = [d['id'] for d in response.data['results']]
        assert deal.id in ids

    def test_list_hides_pending_deals(self, api_client, deal, pending_deal):
        url = reverse('deals:deal-list')
        response = api_client.get(url)

        ids = [d['id'] for d in response.data['results']]
        assert pending_deal.id not in ids

    def test_list_never_exposes_pin(self, api_client, deal):
        url = reverse('deals:deal-list')
        response = api_client.get(url)

        item = response.data['results'][0]
        assert 'verification_pin' not in item
        assert 'pin_salt' not in item

    def test_filter_by_category(self, api_client, vendor, make_deal):
        food = make_deal(vendor, category=DealCategory.FOOD)
        make_deal(vendor, category=DealCategory.FASHION)

        url = reverse('deals:deal-list')
        response = api_client.get(url, {'category': 'food'})

        assert response.status_code == status.HTTP_200_OK
        assert [d['id'] for d in response.data['results']] == [food.id]

    def test_filter_by_city(self, api_client, deal, other_vendor, make_deal):
        make_deal(other_vendor)

        url = reverse('deals:deal-list')
        response = api_client.get(url, {'city': 'mumbai'})

        assert [d['id'] for d in response.data['results']] == [deal.id]

    def test_invalid_filter(self, api_client):
        url = reverse('deals:deal-list')
        response = api_client.get(url, {'deal_type': 'teleport'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_retrieve_deal(self, api_client, deal):
        url = reverse('deals:deal-detail', kwargs={'pk': deal.id})
        response = api_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['title'] == deal.title
        assert response.data['vendor']['business_name'] == 'Corner Electronics'

    def test_remaining_redemptions(self, api_client, vendor, make_deal):
        capped = make_deal(vendor, max_redemptions=10, current_redemptions=4)

        url = reverse('deals:deal-detail', kwargs={'pk': capped.id})
        response = api_client.get(url)

        assert response.data['remaining_redemptions'] == 6
        assert response.data['is_fully_redeemed'] is False


# =============================================================================
# Vendor endpoints
# =============================================================================

@pytest.mark.django_db
class TestVendorRegistration:
    """Tests for POST /api/deals/vendor/register/"""

    def test_register(self, customer_client, customer):
        url = reverse('deals:vendor-register')
        response = customer_client.post(url, {
            'business_name': 'Fresh Bakes',
            'city': 'Chennai',
            'state': 'Tamil Nadu',
            'pincode': '600001',
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['is_approved'] is False
        assert Vendor.objects.filter(user=customer).exists()

    def test_register_twice(self, vendor_client):
        url = reverse('deals:vendor-register')
        response = vendor_client.post(url, {
            'business_name': 'Again',
            'city': 'Mumbai',
            'state': 'Maharashtra',
            'pincode': '400001',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_register_invalid_pincode(self, customer_client):
        url = reverse('deals:vendor-register')
        response = customer_client.post(url, {
            'business_name': 'Fresh Bakes',
            'city': 'Chennai',
            'state': 'Tamil Nadu',
            'pincode': 'ABC',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestVendorDeals:
    """Tests for GET/POST /api/deals/vendor/deals/"""

    def _payload(self, **overrides):
        data = {
            'title': 'Flat 30% off sneakers',
            'description': 'On all running shoes.',
            'category': 'fashion',
            'discount_percentage': 30,
            'original_price': '4000.00',
            'valid_until': (timezone.now() + timedelta(days=14)).isoformat(),
        }
        data.update(overrides)
        return data

    def test_create_offline_deal_returns_pin_once(self, vendor_client):
        url = reverse('deals:vendor-deals')
        response = vendor_client.post(url, self._payload(), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        pin = response.data['verification_pin']
        deal = Deal.objects.get(id=response.data['deal']['id'])
        assert verify_pin(pin, deal.verification_pin, deal.pin_salt) is True
        assert response.data['deal']['has_pin'] is True
        assert response.data['deal']['is_approved'] is False

        # The PIN is not part of the listing
        listing = vendor_client.get(url)
        assert 'verification_pin' not in listing.data[0]

    def test_create_with_weak_pin(self, vendor_client):
        url = reverse('deals:vendor-deals')
        response = vendor_client.post(url, self._payload(verification_pin='1111'), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_online_deal_without_link(self, vendor_client):
        url = reverse('deals:vendor-deals')
        response = vendor_client.post(url, self._payload(deal_type='online'), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'affiliate_link' in response.data

    def test_past_end_date(self, vendor_client):
        url = reverse('deals:vendor-deals')
        past = (timezone.now() - timedelta(days=1)).isoformat()
        response = vendor_client.post(url, self._payload(valid_until=past), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unapproved_vendor_cannot_publish(self, pending_vendor_client):
        url = reverse('deals:vendor-deals')
        response = pending_vendor_client.post(url, self._payload(), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_customer_cannot_publish(self, customer_client):
        url = reverse('deals:vendor-deals')
        response = customer_client.post(url, self._payload(), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_own_deals_only(self, vendor_client, deal, pending_deal, other_vendor, make_deal):
        make_deal(other_vendor)

        url = reverse('deals:vendor-deals')
        response = vendor_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert {d['id'] for d in response.data} == {deal.id, pending_deal.id}

    def test_list_flags_fully_redeemed(self, vendor_client, vendor, make_deal):
        sold_out = make_deal(vendor, max_redemptions=3, current_redemptions=3)

        url = reverse('deals:vendor-deals')
        response = vendor_client.get(url)

        result = next(d for d in response.data if d['id'] == sold_out.id)
        assert result['is_fully_redeemed'] is True
        assert result['remaining_redemptions'] == 0


@pytest.mark.django_db
class TestVendorPins:

    def test_reset_pin(self, vendor_client, deal):
        url = reverse('deals:vendor-reset-pin', kwargs={'pk': deal.id})
        response = vendor_client.post(url, {'pin': '6024'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['pin'] == '6024'
        deal.refresh_from_db()
        assert verify_pin('6024', deal.verification_pin, deal.pin_salt) is True

    def test_reset_pin_of_other_vendor(self, vendor_client, other_vendor, make_deal):
        foreign = make_deal(other_vendor)

        url = reverse('deals:vendor-reset-pin', kwargs={'pk': foreign.id})
        response = vendor_client.post(url, {})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_generate_pin(self, vendor_client):
        url = reverse('deals:vendor-generate-pin')
        response = vendor_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['pin']) == 4


# =============================================================================
# Admin moderation
# =============================================================================

@pytest.mark.django_db
class TestModerationEndpoints:

    def test_pending_list(self, admin_client, deal, pending_deal):
        url = reverse('deals:admin-pending')
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert [d['id'] for d in response.data] == [pending_deal.id]

    def test_pending_list_requires_admin(self, vendor_client):
        url = reverse('deals:admin-pending')
        response = vendor_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_approve(self, admin_client, pending_deal):
        url = reverse('deals:admin-approve', kwargs={'pk': pending_deal.id})
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_approved'] is True

    def test_approve_twice(self, admin_client, deal):
        url = reverse('deals:admin-approve', kwargs={'pk': deal.id})
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_reject(self, admin_client, pending_deal):
        url = reverse('deals:admin-reject', kwargs={'pk': pending_deal.id})
        response = admin_client.post(url, {'reason': 'Duplicate listing'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_rejected'] is True
        assert response.data['rejection_reason'] == 'Duplicate listing'

    def test_approve_missing(self, admin_client):
        url = reverse('deals:admin-approve', kwargs={'pk': 99999})
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_approve_vendor(self, admin_client, pending_vendor):
        url = reverse('deals:admin-approve-vendor', kwargs={'pk': pending_vendor.id})
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        pending_vendor.refresh_from_db()
        assert pending_vendor.is_approved is True
