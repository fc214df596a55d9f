from rest_framework import permissions

from apps.deals.permissions import IsVendor


class IsClaimOwner(permissions.BasePermission):
    """
    Permission: User must own the claim.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a DealClaim instance
        return obj.user_id == request.user.id


__all__ = ['IsVendor', 'IsClaimOwner']
