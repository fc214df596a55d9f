from django.utils import timezone
from rest_framework import serializers

from apps.accounts.models import MembershipPlan
from .models import Deal, DealType, DealCategory, Vendor


# =============================================================================
# Input Serializers
# =============================================================================

class DealFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for deal browsing.

    Query Parameters:
        category (str): Filter by category
        deal_type (str): 'online' or 'offline'
        vendor (int): Filter by vendor ID
        city (str): Filter by vendor city (case-insensitive)
    """

    category = serializers.ChoiceField(choices=DealCategory.choices, required=False)
    deal_type = serializers.ChoiceField(choices=DealType.choices, required=False)
    vendor = serializers.IntegerField(required=False, min_value=1)
    city = serializers.CharField(required=False, max_length=100)


class VendorRegistrationSerializer(serializers.Serializer):
    """Validate vendor onboarding input."""

    business_name = serializers.CharField(max_length=200)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    pincode = serializers.RegexField(r'^\d{4,10}$', max_length=10)
    address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class DealCreateSerializer(serializers.Serializer):
    """
    Validate deal creation input.

    ``verification_pin`` is optional; offline deals without one get a
    generated PIN which is returned once in the response.
    """

    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    category = serializers.ChoiceField(choices=DealCategory.choices, default=DealCategory.OTHER)
    deal_type = serializers.ChoiceField(choices=DealType.choices, default=DealType.OFFLINE)
    affiliate_link = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    discount_percentage = serializers.IntegerField(min_value=1, max_value=100)
    original_price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    valid_from = serializers.DateTimeField(required=False)
    valid_until = serializers.DateTimeField()
    max_redemptions = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    required_membership = serializers.ChoiceField(
        choices=MembershipPlan.choices,
        default=MembershipPlan.BASIC
    )
    verification_pin = serializers.CharField(
        max_length=10,
        required=False,
        allow_blank=True,
        write_only=True,
    )

    def validate_valid_until(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError('Deal end date must be in the future')
        return value

    def validate(self, attrs):
        if attrs.get('deal_type') == DealType.ONLINE and not attrs.get('affiliate_link'):
            raise serializers.ValidationError({
                'affiliate_link': 'Online deals require an affiliate link'
            })

        valid_from = attrs.get('valid_from')
        if valid_from and valid_from >= attrs['valid_until']:
            raise serializers.ValidationError({
                'valid_until': 'End date must be after start date'
            })
        return attrs


class ResetPinSerializer(serializers.Serializer):
    """Optional vendor-chosen replacement PIN."""

    pin = serializers.CharField(max_length=10, required=False, allow_blank=True)


class RejectDealSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# Output Serializers
# =============================================================================

class VendorSerializer(serializers.ModelSerializer):

    class Meta:
        model = Vendor
        fields = [
            'id',
            'business_name',
            'description',
            'address',
            'city',
            'state',
            'pincode',
            'is_approved',
            'total_redemptions',
            'created_at',
        ]
        read_only_fields = fields


class VendorMinimalSerializer(serializers.ModelSerializer):

    class Meta:
        model = Vendor
        fields = ['id', 'business_name', 'city']
        read_only_fields = fields


class DealSerializer(serializers.ModelSerializer):
    """Public deal representation. Never exposes PIN data."""

    vendor = VendorMinimalSerializer(read_only=True)
    remaining_redemptions = serializers.SerializerMethodField()
    is_fully_redeemed = serializers.BooleanField(read_only=True)

    class Meta:
        model = Deal
        fields = [
            'id',
            'vendor',
            'title',
            'description',
            'category',
            'deal_type',
            'affiliate_link',
            'discount_percentage',
            'original_price',
            'discounted_price',
            'valid_from',
            'valid_until',
            'max_redemptions',
            'current_redemptions',
            'remaining_redemptions',
            'is_fully_redeemed',
            'required_membership',
        ]
        read_only_fields = fields

    def get_remaining_redemptions(self, obj):
        if obj.max_redemptions is None:
            return None
        return max(0, obj.max_redemptions - obj.current_redemptions)


class VendorDealSerializer(DealSerializer):
    """Deal as seen by its vendor or an admin, including moderation state."""

    has_pin = serializers.BooleanField(read_only=True)

    class Meta(DealSerializer.Meta):
        fields = DealSerializer.Meta.fields + [
            'is_active',
            'is_approved',
            'is_rejected',
            'rejection_reason',
            'has_pin',
            'pin_created_at',
            'pin_expires_at',
            'created_at',
        ]
        read_only_fields = fields
