"""
Composition root for the application context.
"""
from __future__ import annotations

from typing import Optional

from application.context import AppContext
from core.config import Settings, settings as default_settings
from core.logging_config import get_logger
from core.settings import GatewaySettings
from infrastructure.document_store import create_document_store


logger = get_logger(__name__)


def build_context(
    app_settings: Optional[Settings] = None,
    gateway_settings: Optional[GatewaySettings] = None,
) -> AppContext:
    """Read settings from the environment and open the configured store."""
    app_settings = app_settings or default_settings
    gateway_settings = gateway_settings or GatewaySettings()
    store = create_document_store(app_settings.store)
    logger.info(
        "context_built",
        store_backend=app_settings.store.backend,
        gateway_env=gateway_settings.environment,
        oauth_configured=bool(gateway_settings.client_id and gateway_settings.client_secret),
        embedded_configured=bool(gateway_settings.embedded_secret and gateway_settings.access_token),
    )
    return AppContext(settings=app_settings, gateway_settings=gateway_settings, store=store)
