"""
Payment specific codes and gateway status matching.
"""
from __future__ import annotations

import re
from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Gateway errors (6xxxx)
    UPSTREAM_AUTH_ERROR = 60000
    UPSTREAM_PROTOCOL_ERROR = 60001
    UPSTREAM_REJECTED = 60002
    PAYMENT_NOT_FOUND = 60003
    UPSTREAM_UNAVAILABLE = 60004


# Gateway status strings are free-form ("Approved", "CAPTURED", "Paid - settled", ...)
APPROVED_STATUS_TERMS = ("approved", "captured", "paid")
_APPROVED_RE = re.compile("|".join(APPROVED_STATUS_TERMS), re.IGNORECASE)


def is_approved_status(status: str | None) -> bool:
    """True when any approval term appears anywhere in the gateway status."""
    if not status:
        return False
    return _APPROVED_RE.search(str(status)) is not None
