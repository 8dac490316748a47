# vaultnote/core/rate_limit.py

from slowapi import Limiter
from slowapi.util import get_remote_address

from vaultnote.core.config import get_settings

# One limiter per process, keyed by client address
limiter = Limiter(key_func=get_remote_address)


def create_limit() -> str:
    return get_settings().create_limit


def consume_limit() -> str:
    """Also bounds password guessing against a single message."""
    return get_settings().consume_limit
