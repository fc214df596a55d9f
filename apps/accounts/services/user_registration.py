"""Customer sign-up."""

import logging
from typing import Optional

from django.db import transaction, IntegrityError
from django.contrib.auth import get_user_model

from .exceptions import UserRegistrationError, EmailAlreadyRegisteredError
from .system_log import record_system_log

User = get_user_model()

logger = logging.getLogger(__name__)


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    display_name: str = "",
    phone: str = "",
    ip_address: Optional[str] = None,
    user_agent: str = ""
) -> User:
    """
    Register a new customer account on the basic plan.

    Role and membership are never taken from the request; vendors are
    created by registering a vendor profile afterwards.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        display_name: Optional display name
        phone: Optional phone number, shown to vendors at redemption
        ip_address: Client address for the audit log
        user_agent: Client user agent for the audit log

    Raises:
        EmailAlreadyRegisteredError: If the email is taken
        UserRegistrationError: If the account cannot be stored
    """
    if User.objects.filter(email__iexact=email).exists():
        raise EmailAlreadyRegisteredError("A user with this email already exists")

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            display_name=display_name,
            phone=phone,
        )
    except IntegrityError as e:
        raise UserRegistrationError(f"Registration failed: {str(e)}")

    record_system_log(
        action='USER_SIGNUP',
        user=user,
        details={'role': user.role, 'email': user.email},
        ip_address=ip_address,
        user_agent=user_agent,
    )

    logger.info("Registered user %s", user.id)
    return user
