from functools import lru_cache
import json
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Humanivio API", alias="APP_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="", alias="OPENAI_BASE_URL")
    openai_timeout_seconds: float = Field(default=60.0, alias="OPENAI_TIMEOUT_SECONDS")

    daily_request_limit: int = Field(default=1000, ge=0, alias="DAILY_REQUEST_LIMIT")
    quota_window_seconds: int = Field(default=86_400, gt=0, alias="QUOTA_WINDOW_SECONDS")
    quota_backend: str = Field(default="memory", alias="QUOTA_BACKEND")
    redis_url: str = Field(default="", alias="REDIS_URL")

    max_words: int = Field(default=1000, gt=0, alias="MAX_WORDS")

    cors_allowed_origins: str = Field(default="*", alias="CORS_ALLOWED_ORIGINS")
    trust_proxy_headers: bool = Field(default=False, alias="TRUST_PROXY_HEADERS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    @field_validator("quota_backend", mode="before")
    @classmethod
    def normalize_quota_backend(cls, value: object) -> object:
        if not isinstance(value, str):
            return "memory"
        normalized = value.strip().lower()
        if normalized in {"memory", "redis"}:
            return normalized
        return "memory"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
        return "INFO"

    @staticmethod
    def _normalize_origin(origin: str) -> str:
        candidate = origin.strip().strip("'\"")
        if not candidate:
            return ""
        if candidate == "*":
            return candidate

        if "://" not in candidate:
            candidate = f"https://{candidate}"

        parsed = urlsplit(candidate)
        if not parsed.scheme or not parsed.netloc:
            return ""

        # CORS matching is exact on scheme+host+port; paths must be removed.
        return f"{parsed.scheme}://{parsed.netloc}".rstrip("/")

    @property
    def cors_origins(self) -> list[str]:
        raw = self.cors_allowed_origins.strip()
        if not raw:
            return []

        values: list[str]
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    values = [str(item) for item in parsed]
                else:
                    values = [raw]
            except json.JSONDecodeError:
                values = [raw]
        else:
            values = raw.split(",")

        normalized = [self._normalize_origin(value) for value in values]
        origins = [origin for origin in normalized if origin]
        if "*" in origins:
            return ["*"]
        return origins


@lru_cache
def get_settings() -> Settings:
    return Settings()
