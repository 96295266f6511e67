"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and the route
modules under api/routes/v1/ (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Limit string for POST /auth/login, read lazily so importing never needs settings."""
    return get_settings().login_rate_limit


def verify_rate_limit() -> str:
    """Limit string for POST /auth/verify."""
    return get_settings().verify_rate_limit


def resend_rate_limit() -> str:
    """Limit string for POST /auth/verify/resend."""
    return get_settings().resend_rate_limit
