"""
Redis implementation of the DocumentStore port.

Each document is one JSON string under ``{namespace}:{collection}:{doc_id}``.
Batches run as optimistic transactions: WATCH every touched key, read,
check requirements, resolve writes, then MULTI/EXEC. A concurrent change to
any watched key aborts the EXEC with ``WatchError`` and the whole batch is
re-read and retried, so either every document in the batch updates or none.
"""
from __future__ import annotations

import json
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import WatchError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.ports.document_store import DocumentStore, WriteBatch
from core.logging_config import get_logger
from infrastructure.document_store.base import apply_write, check_requirement, server_timestamp


logger = get_logger(__name__)


class RedisDocumentStore(DocumentStore):
    def __init__(self, client: aioredis.Redis, *, namespace: str = "", watch_retries: int = 5) -> None:
        self._client = client
        self._namespace = namespace.strip(":")
        self._watch_retries = watch_retries

    @classmethod
    def from_url(cls, url: str, *, namespace: str = "", max_connections: int = 10, watch_retries: int = 5) -> "RedisDocumentStore":
        client = aioredis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=max_connections,
        )
        return cls(client, namespace=namespace, watch_retries=watch_retries)

    def _key(self, collection: str, doc_id: str) -> str:
        key = f"{collection}:{doc_id}"
        return f"{self._namespace}:{key}" if self._namespace else key

    @staticmethod
    def _decode(raw: Optional[str]) -> Optional[dict[str, Any]]:
        if raw is None:
            return None
        doc = json.loads(raw)
        return doc if isinstance(doc, dict) else None

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:  # type: ignore[override]
        return self._decode(await self._client.get(self._key(collection, doc_id)))

    async def commit_batch(self, batch: WriteBatch) -> None:  # type: ignore[override]
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._watch_retries),
            wait=wait_exponential(multiplier=0.01, min=0.01, max=0.2),
            retry=retry_if_exception_type(WatchError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("document_batch_retry", attempt=attempt.retry_state.attempt_number)
                await self._commit_once(batch)

    async def _commit_once(self, batch: WriteBatch) -> None:
        keys = batch.keys()
        redis_keys = [self._key(c, d) for c, d in keys]
        async with self._client.pipeline(transaction=True) as pipe:
            await pipe.watch(*redis_keys)
            raw_values = await pipe.mget(*redis_keys)
            current = {key: self._decode(raw) for key, raw in zip(keys, raw_values)}

            for req in batch.requirements:
                check_requirement(req, current.get((req.collection, req.doc_id)))

            now = server_timestamp()
            staged: dict[tuple[str, str], dict[str, Any]] = {}
            for op in batch.writes:
                key = (op.collection, op.doc_id)
                base = staged.get(key, current.get(key))
                staged[key] = apply_write(base, op.data, merge=op.merge, now=now)

            pipe.multi()
            for (collection, doc_id), doc in staged.items():
                pipe.set(self._key(collection, doc_id), json.dumps(doc, ensure_ascii=False, default=str))
            await pipe.execute()

    async def aclose(self) -> None:  # type: ignore[override]
        await self._client.aclose()
