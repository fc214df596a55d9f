from rest_framework import permissions

from .models import Vendor


class IsVendor(permissions.BasePermission):
    """
    Permission: User must have a vendor profile.
    """

    message = 'Vendor profile required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and Vendor.objects.filter(user=user).exists()
        )


class IsPlatformAdmin(permissions.BasePermission):
    """
    Permission: User must be a marketplace admin (role admin or staff).
    """

    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)

