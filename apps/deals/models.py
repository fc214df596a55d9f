from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone
from decimal import Decimal

from apps.accounts.models import MembershipPlan, MEMBERSHIP_LEVELS


class DealType(models.TextChoices):
    OFFLINE = 'offline', 'In-store'
    ONLINE = 'online', 'Online'


class DealCategory(models.TextChoices):
    FASHION = 'fashion', 'Fashion'
    ELECTRONICS = 'electronics', 'Electronics'
    TRAVEL = 'travel', 'Travel'
    FOOD = 'food', 'Food'
    HOME = 'home', 'Home'
    FITNESS = 'fitness', 'Fitness'
    SERVICES = 'services', 'Services'
    OTHER = 'other', 'Other'


class Vendor(models.Model):
    """Business profile owned by a vendor user."""

    user = models.OneToOneField(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='vendor_profile'
    )
    business_name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    address = models.CharField(max_length=300, blank=True)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=10)

    is_approved = models.BooleanField(default=False)
    total_redemptions = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vendors'
        ordering = ['business_name']

    def __str__(self):
        return self.business_name


class DealQuerySet(models.QuerySet):

    def available(self, now=None):
        """Approved, active deals inside their validity window."""
        now = now or timezone.now()
        return self.filter(
            is_active=True,
            is_approved=True,
            valid_from__lte=now,
            valid_until__gt=now,
        )

    def pending_approval(self):
        return self.filter(is_approved=False, is_rejected=False)


class Deal(models.Model):
    """Discount deal submitted by a vendor and approved by an admin."""

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.CASCADE,
        related_name='deals'
    )

    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(
        max_length=20,
        choices=DealCategory.choices,
        default=DealCategory.OTHER
    )
    deal_type = models.CharField(
        max_length=10,
        choices=DealType.choices,
        default=DealType.OFFLINE
    )
    affiliate_link = models.URLField(max_length=500, blank=True)

    # Pricing
    discount_percentage = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(100)]
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    discounted_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )

    # Availability
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField()
    max_redemptions = models.PositiveIntegerField(null=True, blank=True)
    current_redemptions = models.PositiveIntegerField(default=0)
    required_membership = models.CharField(
        max_length=20,
        choices=MembershipPlan.choices,
        default=MembershipPlan.BASIC
    )

    # Moderation
    is_active = models.BooleanField(default=True)
    is_approved = models.BooleanField(default=False)
    approved_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_deals'
    )
    is_rejected = models.BooleanField(default=False)
    rejection_reason = models.TextField(blank=True)

    # Hashed verification PIN for in-store redemption
    verification_pin = models.CharField(max_length=255, blank=True)
    pin_salt = models.CharField(max_length=64, blank=True)
    pin_created_at = models.DateTimeField(null=True, blank=True)
    pin_expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = DealQuerySet.as_manager()

    class Meta:
        db_table = 'deals'
        indexes = [
            models.Index(fields=['vendor', 'created_at'], name='deals_vendor_idx'),
            models.Index(fields=['is_active', 'is_approved', 'valid_until'], name='deals_available_idx'),
            models.Index(fields=['category'], name='deals_category_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(max_redemptions__isnull=True)
                    | models.Q(current_redemptions__lte=models.F('max_redemptions'))
                ),
                name='deals_redemptions_within_max',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.discount_percentage}% off)"

    def is_available(self, now=None):
        now = now or timezone.now()
        return (
            self.is_active
            and self.is_approved
            and self.valid_from <= now < self.valid_until
        )

    def is_fully_redeemed(self):
        return (
            self.max_redemptions is not None
            and self.current_redemptions >= self.max_redemptions
        )

    def allows_membership(self, user):
        required = MEMBERSHIP_LEVELS.get(self.required_membership, 1)
        return user.membership_level >= required

    @property
    def has_pin(self):
        return bool(self.verification_pin and self.pin_salt)

    def get_max_discount(self):
        """Largest discount the deal can grant on its list price."""
        if self.original_price is None:
            return None
        return (self.original_price * self.discount_percentage / Decimal('100')).quantize(Decimal('0.01'))


class PinAttempt(models.Model):
    """One PIN verification attempt, used as rate-limit history."""

    deal = models.ForeignKey(
        Deal,
        on_delete=models.CASCADE,
        related_name='pin_attempts'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pin_attempts'
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    success = models.BooleanField()
    attempted_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'pin_attempts'
        indexes = [
            models.Index(fields=['deal', 'user', 'attempted_at'], name='pin_attempts_deal_user_idx'),
            models.Index(fields=['deal', 'ip_address', 'attempted_at'], name='pin_attempts_deal_ip_idx'),
        ]
        ordering = ['attempted_at']

    def __str__(self):
        outcome = 'ok' if self.success else 'failed'
        return f"PIN attempt on deal {self.deal_id} ({outcome})"
