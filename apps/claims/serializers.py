from decimal import Decimal

from rest_framework import serializers

from apps.deals.models import DealType
from apps.deals.serializers import VendorMinimalSerializer
from .models import DealClaim, ClaimStatus
from .services import ClaimCodeService


# =============================================================================
# Input Serializers
# =============================================================================

class ClaimFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for claim listings.

    Query Parameters:
        status (str): Filter by claim status
    """

    status = serializers.ChoiceField(choices=ClaimStatus.choices, required=False)


class ClaimCodeInputSerializer(serializers.Serializer):
    """Claim code typed or scanned at the counter."""

    claim_code = serializers.CharField(max_length=12, trim_whitespace=True)

    def validate_claim_code(self, value):
        return value.upper()


class CompleteTransactionInputSerializer(ClaimCodeInputSerializer):
    """
    Validate transaction completion input.

    The discount must be positive and cannot exceed the bill.
    """

    bill_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01')
    )
    actual_discount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01')
    )

    def validate(self, attrs):
        if attrs['actual_discount'] > attrs['bill_amount']:
            raise serializers.ValidationError({
                'actual_discount': 'Discount cannot exceed the bill amount'
            })
        return attrs


class PinVerificationInputSerializer(serializers.Serializer):
    pin = serializers.CharField(max_length=10)


# =============================================================================
# Output Serializers
# =============================================================================

class ClaimDealSerializer(serializers.Serializer):
    """Deal fields shown alongside a claim."""

    id = serializers.IntegerField()
    title = serializers.CharField()
    deal_type = serializers.CharField()
    discount_percentage = serializers.IntegerField()
    vendor = VendorMinimalSerializer()


class DealClaimSerializer(serializers.ModelSerializer):
    """Claim as seen by the customer who owns it."""

    deal = ClaimDealSerializer(read_only=True)
    affiliate_link = serializers.SerializerMethodField()
    qr_payload = serializers.SerializerMethodField()

    class Meta:
        model = DealClaim
        fields = [
            'id',
            'deal',
            'claim_code',
            'status',
            'code_expires_at',
            'vendor_verified',
            'bill_amount',
            'actual_savings',
            'claimed_at',
            'verified_at',
            'used_at',
            'affiliate_link',
            'qr_payload',
        ]
        read_only_fields = fields

    def get_affiliate_link(self, obj):
        if obj.deal.deal_type == DealType.ONLINE:
            return obj.deal.affiliate_link
        return None

    def get_qr_payload(self, obj):
        if obj.status != ClaimStatus.CLAIMED:
            return None
        return ClaimCodeService.build_qr_payload(obj)


class VendorClaimSerializer(serializers.ModelSerializer):
    """Claim on one of the vendor's deals."""

    deal_title = serializers.CharField(source='deal.title', read_only=True)
    customer_name = serializers.CharField(source='user.get_display_name', read_only=True)
    customer_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = DealClaim
        fields = [
            'id',
            'deal',
            'deal_title',
            'customer_name',
            'customer_email',
            'claim_code',
            'status',
            'code_expires_at',
            'bill_amount',
            'actual_savings',
            'claimed_at',
            'verified_at',
            'used_at',
        ]
        read_only_fields = fields


class VerificationCustomerSerializer(serializers.Serializer):
    name = serializers.CharField()
    email = serializers.EmailField()
    membership_plan = serializers.CharField()


class VerificationDealSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    title = serializers.CharField()
    discount_percentage = serializers.IntegerField()
    original_price = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    discounted_price = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    max_discount = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)


class ClaimVerificationSerializer(serializers.Serializer):
    """Summary returned to the vendor after a successful verification."""

    claim_id = serializers.IntegerField()
    claim_code = serializers.CharField()
    customer = VerificationCustomerSerializer()
    deal = VerificationDealSerializer()
    claimed_at = serializers.DateTimeField()
    verified_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()


class TransactionResultSerializer(serializers.Serializer):
    claim_id = serializers.IntegerField()
    claim_code = serializers.CharField()
    deal_id = serializers.IntegerField()
    bill_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    savings = serializers.DecimalField(max_digits=10, decimal_places=2)
    final_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    completed_at = serializers.DateTimeField()
