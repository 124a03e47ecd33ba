"""
Document store backends and the factory that picks one from settings.
"""
from __future__ import annotations

from application.ports.document_store import DocumentStore
from core.config import StoreSettings

from .inmemory import InMemoryDocumentStore


def create_document_store(cfg: StoreSettings) -> DocumentStore:
    backend = (cfg.backend or "memory").lower()
    if backend == "redis":
        if not cfg.redis.url:
            raise RuntimeError("STORE__REDIS__URL is required for the redis document store")
        from .redis import RedisDocumentStore
        return RedisDocumentStore.from_url(
            cfg.redis.url,
            namespace=cfg.redis.namespace,
            max_connections=cfg.redis.max_connections,
            watch_retries=cfg.redis.watch_retries,
        )
    if backend in {"memory", "inmemory"}:
        return InMemoryDocumentStore()
    raise ValueError(f"Unsupported document store backend: {backend}")


__all__ = ["InMemoryDocumentStore", "create_document_store"]
