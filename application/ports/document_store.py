"""
Document store port (application/ports) for the key-value document database.

Documents are addressed by ``collection`` + ``doc_id`` and hold JSON-like
dicts. Writes may carry two sentinels resolved by the store at commit time:
``Increment(n)`` (atomic counter add, starting from 0 when absent) and
``SERVER_TIMESTAMP``. A ``WriteBatch`` is all-or-nothing: either every write
and requirement in it applies, or none does.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Increment:
    amount: int | float


Predicate = Callable[[Optional[dict[str, Any]]], bool]


@dataclass(frozen=True)
class WriteOp:
    collection: str
    doc_id: str
    data: dict[str, Any]
    merge: bool = True


@dataclass(frozen=True)
class Requirement:
    collection: str
    doc_id: str
    predicate: Predicate
    reason: str


class PreconditionFailed(Exception):
    """A batch requirement did not hold at commit time; nothing was written."""

    def __init__(self, requirement: Requirement):
        self.requirement = requirement
        super().__init__(
            f"{requirement.collection}/{requirement.doc_id}: {requirement.reason}"
        )


class WriteBatch:
    """Collects writes and requirements, then commits them atomically."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self.writes: list[WriteOp] = []
        self.requirements: list[Requirement] = []

    def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = True) -> "WriteBatch":
        self.writes.append(WriteOp(collection, doc_id, data, merge))
        return self

    def require(self, collection: str, doc_id: str, predicate: Predicate, reason: str) -> "WriteBatch":
        """Abort the whole batch unless ``predicate(current_document)`` holds."""
        self.requirements.append(Requirement(collection, doc_id, predicate, reason))
        return self

    def keys(self) -> list[tuple[str, str]]:
        seen: dict[tuple[str, str], None] = {}
        for item in [*self.requirements, *self.writes]:
            seen[(item.collection, item.doc_id)] = None
        return list(seen)

    def __len__(self) -> int:
        return len(self.writes)

    async def commit(self) -> None:
        if not self.writes:
            return
        await self._store.commit_batch(self)


class DocumentStore(ABC):
    """Document store port; implementations live in infrastructure/document_store."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    async def commit_batch(self, batch: WriteBatch) -> None:
        ...

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = True) -> None:
        await self.batch().set(collection, doc_id, data, merge=merge).commit()

    async def aclose(self) -> None:
        return None
