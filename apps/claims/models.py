from django.db import models
from django.utils import timezone


class ClaimStatus(models.TextChoices):
    CLAIMED = 'claimed', 'Claimed'
    VERIFIED = 'verified', 'Verified'
    USED = 'used', 'Used'
    EXPIRED = 'expired', 'Expired'


OPEN_STATUSES = (ClaimStatus.CLAIMED, ClaimStatus.VERIFIED)


class DealClaimQuerySet(models.QuerySet):

    def open(self, now=None):
        """Claims that can still be verified or completed."""
        now = now or timezone.now()
        return self.filter(status__in=OPEN_STATUSES, code_expires_at__gte=now)

    def stale(self, now=None):
        """Open claims whose code lifetime has passed."""
        now = now or timezone.now()
        return self.filter(status__in=OPEN_STATUSES, code_expires_at__lt=now)


class DealClaim(models.Model):
    """
    A customer's claim on a deal.

    Lifecycle: claimed -> verified -> used, or expired once the claim code
    outlives ``code_expires_at``. A used claim is never modified again.
    """

    deal = models.ForeignKey(
        'deals.Deal',
        on_delete=models.CASCADE,
        related_name='claims'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='deal_claims'
    )

    claim_code = models.CharField(max_length=12, unique=True)
    code_expires_at = models.DateTimeField()
    status = models.CharField(
        max_length=10,
        choices=ClaimStatus.choices,
        default=ClaimStatus.CLAIMED
    )

    # Point-of-sale verification
    vendor_verified = models.BooleanField(default=False)
    verified_by = models.ForeignKey(
        'deals.Vendor',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='verified_claims'
    )

    # Transaction
    bill_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    actual_savings = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    claimed_at = models.DateTimeField(default=timezone.now)
    verified_at = models.DateTimeField(null=True, blank=True)
    used_at = models.DateTimeField(null=True, blank=True)

    objects = DealClaimQuerySet.as_manager()

    class Meta:
        db_table = 'deal_claims'
        indexes = [
            models.Index(fields=['user', 'claimed_at'], name='deal_claims_user_idx'),
            models.Index(fields=['deal', 'status'], name='deal_claims_deal_status_idx'),
            models.Index(fields=['status', 'code_expires_at'], name='deal_claims_expiry_idx'),
        ]
        ordering = ['-claimed_at']

    def __str__(self):
        return f"{self.claim_code} ({self.status})"

    def is_code_expired(self, now=None):
        now = now or timezone.now()
        return now > self.code_expires_at
