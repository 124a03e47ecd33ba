"""
Application context: everything a request needs that used to be process-wide
state (settings, secrets, the document store handle, the clock).

Built once by the composition root and passed explicitly; tests build their
own with fakes.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from application.ports.document_store import DocumentStore
from core.config import Settings
from core.settings import GatewaySettings


@dataclass
class AppContext:
    settings: Settings
    gateway_settings: GatewaySettings
    store: DocumentStore
    clock: Callable[[], float] = field(default=time.time)
    # Substituted by tests (httpx.MockTransport); None means real network
    http_transport: Optional[httpx.AsyncBaseTransport] = None

    async def aclose(self) -> None:
        await self.store.aclose()
