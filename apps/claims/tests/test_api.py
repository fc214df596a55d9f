import json
import pytest
from decimal import Decimal
from django.urls import reverse
from rest_framework import status
from apps.deals.models import DealType
from apps.claims.models import DealClaim, ClaimStatus
from apps.claims.services import ClaimCodeService
from .conftest import DEAL_PIN, WRONG_PIN


# =============================================================================
# Customer endpoints
# =============================================================================

@pytest.mark.django_db
class TestClaimDealEndpoint:
    """Tests for POST /api/claims/deals/{deal_id}/claim/"""

    def test_claim(self, customer_client, deal):
        url = reverse('claims:claim-deal', kwargs={'deal_id': deal.id})
        response = customer_client.post(url)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == ClaimStatus.CLAIMED
        assert len(response.data['claim_code']) == 6
        assert response.data['affiliate_link'] is None

        payload = json.loads(response.data['qr_payload'])
        assert payload['claimCode'] == response.data['claim_code']

    def test_claim_online_deal_returns_link(self, customer_client, vendor, make_deal):
        online = make_deal(
            vendor,
            deal_type=DealType.ONLINE,
            affiliate_link='https://shop.example.com/offer',
        )

        url = reverse('claims:claim-deal', kwargs={'deal_id': online.id})
        response = customer_client.post(url)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['affiliate_link'] == 'https://shop.example.com/offer'

    def test_claim_unauthenticated(self, api_client, deal):
        url = reverse('claims:claim-deal', kwargs={'deal_id': deal.id})
        response = api_client.post(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_claim_missing_deal(self, customer_client):
        url = reverse('claims:claim-deal', kwargs={'deal_id': 99999})
        response = customer_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_claim_unapproved_deal(self, customer_client, vendor, make_deal):
        pending = make_deal(vendor, is_approved=False)

        url = reverse('claims:claim-deal', kwargs={'deal_id': pending.id})
        response = customer_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['detail'].code == 'deal_unavailable'

    def test_claim_requires_membership(self, customer_client, vendor, make_deal):
        ultimate = make_deal(vendor, required_membership='ultimate')

        url = reverse('claims:claim-deal', kwargs={'deal_id': ultimate.id})
        response = customer_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['detail'].code == 'membership_upgrade_required'


@pytest.mark.django_db
class TestVerifyPinEndpoint:
    """Tests for POST /api/claims/deals/{deal_id}/verify-pin/"""

    def test_correct_pin(self, customer_client, deal):
        url = reverse('claims:verify-pin', kwargs={'deal_id': deal.id})
        response = customer_client.post(url, {'pin': DEAL_PIN})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == ClaimStatus.VERIFIED
        assert response.data['qr_payload'] is None

    def test_wrong_pin(self, customer_client, deal):
        url = reverse('claims:verify-pin', kwargs={'deal_id': deal.id})
        response = customer_client.post(url, {'pin': WRONG_PIN})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_weak_pin(self, customer_client, deal):
        url = reverse('claims:verify-pin', kwargs={'deal_id': deal.id})
        response = customer_client.post(url, {'pin': '1234'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_rate_limited(self, customer_client, deal):
        url = reverse('claims:verify-pin', kwargs={'deal_id': deal.id})
        for _ in range(5):
            customer_client.post(url, {'pin': WRONG_PIN})

        response = customer_client.post(url, {'pin': DEAL_PIN})

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.data['next_attempt_at'] is not None

    def test_missing_pin(self, customer_client, deal):
        url = reverse('claims:verify-pin', kwargs={'deal_id': deal.id})
        response = customer_client.post(url, {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'pin' in response.data


@pytest.mark.django_db
class TestMyClaims:
    """Tests for GET /api/claims/mine/ and /api/claims/{id}/"""

    def test_list_own_claims(self, customer_client, claim, other_customer, deal):
        ClaimCodeService.claim_deal(deal.id, other_customer)

        url = reverse('claims:my-claims')
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert [c['id'] for c in response.data['results']] == [claim.id]

    def test_filter_by_status(self, customer_client, claim):
        url = reverse('claims:my-claims')
        response = customer_client.get(url, {'status': 'used'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['results'] == []

    def test_claim_detail(self, customer_client, claim):
        url = reverse('claims:claim-detail', kwargs={'pk': claim.id})
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['claim_code'] == claim.claim_code

    def test_claim_detail_of_other_user(self, other_customer_client, claim):
        url = reverse('claims:claim-detail', kwargs={'pk': claim.id})
        response = other_customer_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_claim_qr_image(self, customer_client, claim):
        url = reverse('claims:claim-qr', kwargs={'pk': claim.id})
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'image/png'
        assert response.content.startswith(b'\x89PNG')

    def test_claim_qr_after_verification(self, customer_client, verified_claim):
        url = reverse('claims:claim-qr', kwargs={'pk': verified_claim.id})
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_claim_qr_of_other_user(self, other_customer_client, claim):
        url = reverse('claims:claim-qr', kwargs={'pk': claim.id})
        response = other_customer_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Vendor endpoints
# =============================================================================

@pytest.mark.django_db
class TestVerifyCodeEndpoint:
    """Tests for POST /api/claims/verify/"""

    def test_verify(self, vendor_client, claim):
        url = reverse('claims:verify-code')
        response = vendor_client.post(url, {'claim_code': claim.claim_code.lower()})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['customer']['name'] == 'Asha Rao'
        assert response.data['deal']['max_discount'] == '500.00'

    def test_verify_other_vendors_claim(self, other_vendor_client, claim):
        url = reverse('claims:verify-code')
        response = other_vendor_client.post(url, {'claim_code': claim.claim_code})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['detail'].code == 'wrong_vendor'

    def test_customer_cannot_verify(self, customer_client, claim):
        url = reverse('claims:verify-code')
        response = customer_client.post(url, {'claim_code': claim.claim_code})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_code(self, vendor_client):
        url = reverse('claims:verify-code')
        response = vendor_client.post(url, {'claim_code': 'ZZZZZZ'})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_verify_twice(self, vendor_client, verified_claim):
        url = reverse('claims:verify-code')
        response = vendor_client.post(url, {'claim_code': verified_claim.claim_code})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['detail'].code == 'claim_already_verified'

    def test_verify_expired(self, vendor_client, claim):
        DealClaim.objects.filter(pk=claim.pk).update(code_expires_at=claim.claimed_at)

        url = reverse('claims:verify-code')
        response = vendor_client.post(url, {'claim_code': claim.claim_code})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['detail'].code == 'claim_code_expired'


@pytest.mark.django_db
class TestCompleteTransactionEndpoint:
    """Tests for POST /api/claims/complete/"""

    def test_complete(self, vendor_client, verified_claim, customer):
        url = reverse('claims:complete-transaction')
        response = vendor_client.post(url, {
            'claim_code': verified_claim.claim_code,
            'bill_amount': '500.00',
            'actual_discount': '100.00',
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.data['savings'] == '100.00'
        assert response.data['final_amount'] == '400.00'
        customer.refresh_from_db()
        assert customer.total_savings == Decimal('100.00')

    def test_complete_twice(self, vendor_client, verified_claim):
        url = reverse('claims:complete-transaction')
        data = {
            'claim_code': verified_claim.claim_code,
            'bill_amount': '500.00',
            'actual_discount': '100.00',
        }
        vendor_client.post(url, data)
        response = vendor_client.post(url, data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['detail'].code == 'claim_already_used'

    def test_discount_exceeds_bill(self, vendor_client, verified_claim):
        url = reverse('claims:complete-transaction')
        response = vendor_client.post(url, {
            'claim_code': verified_claim.claim_code,
            'bill_amount': '100.00',
            'actual_discount': '150.00',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'actual_discount' in response.data

    def test_complete_unverified(self, vendor_client, claim):
        url = reverse('claims:complete-transaction')
        response = vendor_client.post(url, {
            'claim_code': claim.claim_code,
            'bill_amount': '500.00',
            'actual_discount': '100.00',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['detail'].code == 'claim_not_verified'

    def test_complete_other_vendors_claim(self, other_vendor_client, verified_claim):
        url = reverse('claims:complete-transaction')
        response = other_vendor_client.post(url, {
            'claim_code': verified_claim.claim_code,
            'bill_amount': '500.00',
            'actual_discount': '100.00',
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestVendorClaims:
    """Tests for GET /api/claims/vendor/"""

    def test_list(self, vendor_client, claim):
        url = reverse('claims:vendor-claims')
        response = vendor_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        result = response.data['results'][0]
        assert result['claim_code'] == claim.claim_code
        assert result['customer_name'] == 'Asha Rao'

    def test_other_vendor_sees_nothing(self, other_vendor_client, claim):
        url = reverse('claims:vendor-claims')
        response = other_vendor_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['results'] == []
