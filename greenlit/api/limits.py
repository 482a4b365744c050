"""Rate limiting for generation routes."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from greenlit.core.config import get_settings

# Per client address; toggled by settings.rate_limit_enabled in create_app
limiter = Limiter(key_func=get_remote_address)


def generation_limit() -> str:
    return get_settings().generation_rate_limit
