# ==========================================
# apps/deals/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Vendor, Deal, PinAttempt


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    """Admin interface for vendor profiles."""

    list_display = ['business_name', 'user', 'city', 'is_approved', 'total_redemptions', 'created_at']
    list_filter = ['is_approved', 'city', 'state']
    search_fields = ['business_name', 'user__email', 'city']
    readonly_fields = ['total_redemptions', 'created_at', 'updated_at']
    actions = ['approve_vendors']

    @admin.action(description='Approve selected vendors')
    def approve_vendors(self, request, queryset):
        count = queryset.update(is_approved=True)
        self.message_user(request, f'Approved {count} vendor(s).')


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    """
    Admin interface for deals.

    PIN hash and salt are never editable here; vendors rotate PINs
    through the API.
    """

    list_display = [
        'title',
        'vendor',
        'deal_type',
        'discount_percentage',
        'redemptions_display',
        'moderation_badge',
        'is_active',
        'valid_until',
    ]
    list_filter = ['deal_type', 'category', 'is_approved', 'is_rejected', 'is_active']
    search_fields = ['title', 'vendor__business_name']
    date_hierarchy = 'created_at'
    readonly_fields = [
        'current_redemptions',
        'approved_by',
        'verification_pin',
        'pin_salt',
        'pin_created_at',
        'pin_expires_at',
        'created_at',
        'updated_at',
    ]

    def redemptions_display(self, obj):
        if obj.max_redemptions is None:
            return f"{obj.current_redemptions} / unlimited"
        return f"{obj.current_redemptions} / {obj.max_redemptions}"
    redemptions_display.short_description = 'Redemptions'

    def moderation_badge(self, obj):
        """Display moderation state as colored badge."""
        if obj.is_approved:
            bg, fg, label = '#6B8E5E', 'white', 'Approved'
        elif obj.is_rejected:
            bg, fg, label = '#B85C5C', 'white', 'Rejected'
        else:
            bg, fg, label = '#E5C49A', '#2C1810', 'Pending'
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, label
        )
    moderation_badge.short_description = 'Status'


@admin.register(PinAttempt)
class PinAttemptAdmin(admin.ModelAdmin):
    list_display = ['deal', 'user', 'ip_address', 'success', 'attempted_at']
    list_filter = ['success', 'attempted_at']
    search_fields = ['deal__title', 'user__email', 'ip_address']
    readonly_fields = ['deal', 'user', 'ip_address', 'user_agent', 'success', 'attempted_at']

    def has_add_permission(self, request):
        return False
