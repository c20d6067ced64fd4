"""Shared utilities used across the Urban Auto client core."""

import re


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("999 000 1111")
        '9990001111'
        >>> normalize_phone("+91 (999) 000-1111")
        '+919990001111'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def normalize_email(value: str) -> str:
    """Trim and lowercase an email address for lookups and storage."""
    return value.strip().lower()


def is_blank(value: object) -> bool:
    """True for None and for strings that are empty after trimming."""
    return value is None or (isinstance(value, str) and not value.strip())
