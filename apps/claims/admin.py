# ==========================================
# apps/claims/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import DealClaim, ClaimStatus


STATUS_COLORS = {
    ClaimStatus.CLAIMED: ('#E5C49A', '#2C1810'),
    ClaimStatus.VERIFIED: ('#5C7FB8', 'white'),
    ClaimStatus.USED: ('#6B8E5E', 'white'),
    ClaimStatus.EXPIRED: ('#9E9E9E', 'white'),
}


@admin.register(DealClaim)
class DealClaimAdmin(admin.ModelAdmin):
    """
    Admin interface for claims.

    Claims change state only through the redemption workflow, so every
    field is read-only here.
    """

    list_display = [
        'claim_code',
        'deal',
        'user',
        'status_badge',
        'bill_amount',
        'actual_savings',
        'claimed_at',
        'code_expires_at',
    ]
    list_filter = ['status', 'vendor_verified', 'claimed_at']
    search_fields = ['claim_code', 'user__email', 'deal__title', 'deal__vendor__business_name']
    date_hierarchy = 'claimed_at'
    readonly_fields = [
        'deal',
        'user',
        'claim_code',
        'code_expires_at',
        'status',
        'vendor_verified',
        'verified_by',
        'bill_amount',
        'actual_savings',
        'claimed_at',
        'verified_at',
        'used_at',
    ]

    def status_badge(self, obj):
        """Display claim status as colored badge."""
        bg, fg = STATUS_COLORS.get(obj.status, ('#9E9E9E', 'white'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False
