"""Shared field validators for domain models."""

import re

# Pragmatic address check; the provider does the authoritative validation.
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_EMAIL_LENGTH = 254


def is_valid_email(address: str | None) -> bool:
    if not address or len(address) > MAX_EMAIL_LENGTH:
        return False
    return bool(_EMAIL_RE.match(address))


def normalize_email(address: str) -> str:
    return address.strip().lower()
