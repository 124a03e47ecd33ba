"""
Minimal result type for best-effort operations.

Operations that must never surface an error to their caller (the merchant
status probe, webhook reconciliation) return ``Ok`` or ``Err`` instead of
raising; the HTTP layer maps ``Err`` to a fixed fallback body.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    reason: str
    error: BaseException | None = None

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
