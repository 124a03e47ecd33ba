"""
Customer name and country helpers used when building gateway payloads.
"""
from __future__ import annotations

from typing import Optional, Tuple


DEFAULT_FIRST_NAME = "Guest"
DEFAULT_LAST_NAME = "User"
SINGLE_NAME_LAST_NAME = "Customer"

_USA = {"US", "USA", "UNITED STATES", "UNITED STATES OF AMERICA", "U.S.", "U.S.A."}
_CAN = {"CA", "CAN", "CANADA"}


def split_name(name: Optional[str]) -> Tuple[str, str]:
    """Split a composite display name: the last token is the surname."""
    parts = (name or "").split()
    if not parts:
        return DEFAULT_FIRST_NAME, DEFAULT_LAST_NAME
    if len(parts) == 1:
        return parts[0], SINGLE_NAME_LAST_NAME
    return " ".join(parts[:-1]), parts[-1]


def resolve_name(
    first_name: Optional[str],
    last_name: Optional[str],
    name: Optional[str],
) -> Tuple[str, str]:
    """Prefer explicit first/last names, falling back to splitting ``name``."""
    first = (first_name or "").strip()
    last = (last_name or "").strip()
    if first or last:
        return first or DEFAULT_FIRST_NAME, last or DEFAULT_LAST_NAME
    return split_name(name)


def to_alpha3(country: Optional[str]) -> str:
    """Coerce a country into the ISO alpha-3 code the embedded SDK expects."""
    s = (country or "").strip().upper()
    if not s or s in _USA:
        return "USA"
    if s in _CAN:
        return "CAN"
    return s if len(s) == 3 else "USA"
