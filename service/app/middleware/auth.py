"""
Caller identity.

There is no authentication: every request acts as the configured demo user.
Routes still receive the identity through this dependency so real auth can
replace it in one place.
"""

from app.config import get_settings


def get_current_user_id() -> str:
    """Return the id of the user making the request."""
    return get_settings().demo_user_id
