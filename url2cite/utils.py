"""Utility functions for url2cite."""

import re
from datetime import datetime, timezone
from urllib.parse import urlparse


def is_url(value: str) -> bool:
    """True for absolute URLs (scheme and host), e.g. not ``./local.html``."""
    if not isinstance(value, str) or not value or any(c.isspace() for c in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def title_has_token(title: str, token: str) -> bool:
    """Whether ``token`` appears as a standalone word in a link title."""
    return re.search(rf"\b{re.escape(token)}\b", title) is not None


def json_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp like ``2024-01-31T12:00:00.000Z``."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
