"""In-memory implementation of the DocumentStore port.

Single-process only. Useful for local dev and tests.
"""
from __future__ import annotations

import asyncio
import copy
from typing import Any, Optional

from application.ports.document_store import DocumentStore, WriteBatch
from infrastructure.document_store.base import apply_write, check_requirement, server_timestamp


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, initial: Optional[dict[str, dict[str, dict[str, Any]]]] = None) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = copy.deepcopy(initial or {})
        self._lock = asyncio.Lock()
        self.commits = 0

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:  # type: ignore[override]
        async with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    async def commit_batch(self, batch: WriteBatch) -> None:  # type: ignore[override]
        async with self._lock:
            for req in batch.requirements:
                check_requirement(req, self._collections.get(req.collection, {}).get(req.doc_id))
            # Stage on copies so a failing write leaves nothing behind
            now = server_timestamp()
            staged: dict[tuple[str, str], dict[str, Any]] = {}
            for op in batch.writes:
                key = (op.collection, op.doc_id)
                current = staged.get(key, self._collections.get(op.collection, {}).get(op.doc_id))
                staged[key] = apply_write(current, op.data, merge=op.merge, now=now)
            for (collection, doc_id), doc in staged.items():
                self._collections.setdefault(collection, {})[doc_id] = doc
            self.commits += 1

    def dump(self, collection: str) -> dict[str, dict[str, Any]]:
        """Snapshot of a collection (tests and local debugging)."""
        return copy.deepcopy(self._collections.get(collection, {}))
