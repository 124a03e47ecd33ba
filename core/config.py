"""
Application settings (pydantic-settings v2, nested env keys with ``__``).

Gateway credentials and endpoints live in ``core.settings`` so they can be
loaded and validated on their own.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class RedisSettings(BaseModel):
    url: Optional[str] = None
    max_connections: int = 10
    namespace: str = "ranch-payments"
    # WATCH/MULTI attempts before a contended batch gives up
    watch_retries: int = 5


class StoreSettings(BaseModel):
    backend: str = "memory"  # memory, redis
    redis: RedisSettings = Field(default_factory=RedisSettings)


class Settings(BaseSettings):
    """Project settings"""

    PROJECT_NAME: str = Field(default="Ranch Payments")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # Hosting rewrites may put the routes under /api
    API_PREFIX: str = Field(default="")

    # Reverse proxies in front of the app that append to X-Forwarded-For;
    # 0 means the socket peer is the caller
    TRUSTED_PROXY_HOPS: int = Field(default=0, ge=0)

    store: StoreSettings = Field(default_factory=StoreSettings)

    # CORS: browser checkout pages call these endpoints directly
    CORS_ORIGINS: list = Field(default=["*"])
    CORS_ORIGIN_REGEX: Optional[str] = Field(
        default=r"https://.*\.vercel\.app|http://(localhost|127\.0\.0\.1)(:\d+)?"
    )

    # Request body logging
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("API_PREFIX")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """Accept a JSON array string or a comma-separated string."""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
