"""
Payment gateway settings using pydantic-settings v2 with nested env keys.

Secrets are read from the environment (``DELUXE__CLIENT_ID`` and friends) when
the application context is built; nothing here is instantiated at import
time so tests can construct their own.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class GatewayTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 20.0
    write: float = 20.0
    total: float = 30.0


class GatewayHosts(BaseModel):
    # Transactional and embedded hosts use different subdomains per environment
    sandbox_api: str = "https://sandbox.api.deluxe.com"
    production_api: str = "https://api.deluxe.com"
    sandbox_embedded: str = "https://payments2.deluxe.com"
    production_embedded: str = "https://payments.deluxe.com"


class GatewayPaths(BaseModel):
    oauth_token: str = "/secservices/oauth2/v2/token"
    payment_links: str = "/dpp/v1/gateway/paymentlinks"
    refunds: str = "/dpp/v1/gateway/refunds"
    payment_search: str = "/dpp/v1/gateway/payments/search"
    merchant_status: str = "/embedded/merchantStatus"


class WebhookSettings(BaseModel):
    ip_allowlist: list[str] | None = None  # Optional IPs/CIDRs allowed to post webhooks


class GatewaySettings(BaseSettings):
    use_sandbox: bool = True

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None  # partner token / merchant accessor GUID
    mid: Optional[str] = None  # informational only
    embedded_secret: Optional[str] = None  # HS256 key for embedded tokens

    status_token_ttl_seconds: int = 300
    session_token_ttl_seconds: int = 600
    payment_link_expiry: str = "9 DAYS"

    hosts: GatewayHosts = Field(default_factory=GatewayHosts)
    paths: GatewayPaths = Field(default_factory=GatewayPaths)
    timeouts: GatewayTimeouts = Field(default_factory=GatewayTimeouts)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    model_config = SettingsConfigDict(
        env_prefix="DELUXE__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @property
    def environment(self) -> str:
        return "sandbox" if self.use_sandbox else "production"

    @property
    def gateway_base(self) -> str:
        return self.hosts.sandbox_api if self.use_sandbox else self.hosts.production_api

    @property
    def embedded_base(self) -> str:
        return self.hosts.sandbox_embedded if self.use_sandbox else self.hosts.production_embedded

    def gateway_url(self, path: str) -> str:
        return f"{self.gateway_base.rstrip('/')}{path}"

    def embedded_url(self, path: str) -> str:
        return f"{self.embedded_base.rstrip('/')}{path}"
