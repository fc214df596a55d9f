"""Audit trail for business events."""

from typing import Optional, Tuple

from apps.accounts.models import SystemLog, User


def record_system_log(
    *,
    action: str,
    user: Optional[User] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: str = ""
) -> SystemLog:
    """
    Persist an audit entry.

    Details must be JSON serializable; decimals and datetimes should be
    converted by the caller.
    """
    return SystemLog.objects.create(
        user=user,
        action=action,
        details=details or {},
        ip_address=ip_address or None,
        user_agent=(user_agent or "")[:255],
    )


def client_meta(request) -> Tuple[Optional[str], str]:
    """Return ``(ip_address, user_agent)`` of a request for audit entries."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        ip_address = forwarded.split(',')[0].strip()
    else:
        ip_address = request.META.get('REMOTE_ADDR')
    return ip_address or None, request.META.get('HTTP_USER_AGENT', '')
