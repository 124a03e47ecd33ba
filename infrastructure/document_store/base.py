"""
Write resolution shared by the document store backends.

Merge writes deep-merge nested maps (a map value in ``data`` updates the
stored map key by key); non-merge writes replace the document. Sentinels are
resolved against the value being replaced.
"""
from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Optional

from application.ports.document_store import Increment, Requirement, PreconditionFailed, _ServerTimestamp


def server_timestamp(now: Optional[datetime] = None) -> str:
    ts = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return ts.isoformat().replace("+00:00", "Z")


def _resolve(value: Any, current: Any, now: str) -> Any:
    if isinstance(value, Increment):
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        return base + value.amount
    if isinstance(value, _ServerTimestamp):
        return now
    if isinstance(value, dict):
        return {k: _resolve(v, None, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v, None, now) for v in value]
    return value


def _merge(target: dict[str, Any], data: dict[str, Any], now: str) -> None:
    for key, value in data.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge(current, value, now)
        else:
            target[key] = _resolve(value, current, now)


def apply_write(
    existing: Optional[dict[str, Any]],
    data: dict[str, Any],
    *,
    merge: bool,
    now: Optional[str] = None,
) -> dict[str, Any]:
    """Return the new document; ``existing`` is left untouched."""
    now = now or server_timestamp()
    doc = copy.deepcopy(existing) if (merge and existing) else {}
    _merge(doc, data, now)
    return doc


def check_requirement(requirement: Requirement, current: Optional[dict[str, Any]]) -> None:
    if not requirement.predicate(copy.deepcopy(current) if current is not None else None):
        raise PreconditionFailed(requirement)
