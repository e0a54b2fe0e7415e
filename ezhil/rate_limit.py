"""Shared request rate limiter."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ezhil.config import get_settings

settings = get_settings()

limiter = Limiter(key_func=get_remote_address)

SUBMISSION_LIMIT = f"{settings.rate_limit_per_minute}/minute"
