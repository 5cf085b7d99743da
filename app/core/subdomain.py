import re
from typing import Iterable, Optional

from app.core.config import settings

SUBDOMAIN_PATTERN = re.compile(r"[a-z0-9-]+")
MIN_LENGTH = 3
MAX_LENGTH = 63


def validate_subdomain(subdomain: str, reserved: Optional[Iterable[str]] = None) -> bool:
    """Check a subdomain against the DNS label and reserved-word rules"""
    if not isinstance(subdomain, str):
        return False

    # Only lowercase letters, digits and hyphens
    if not SUBDOMAIN_PATTERN.fullmatch(subdomain):
        return False

    if len(subdomain) < MIN_LENGTH or len(subdomain) > MAX_LENGTH:
        return False

    if subdomain.startswith("-") or subdomain.endswith("-"):
        return False

    if reserved is None:
        reserved = settings.TENANT_RESERVED_SUBDOMAINS
    if subdomain in set(reserved):
        return False

    return True
