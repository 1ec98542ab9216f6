"""Rate limiting for the public invitation token endpoints."""

from __future__ import annotations

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)
logger.info("Rate limiter configured with storage %s", settings.RATE_LIMIT_STORAGE_URI)
