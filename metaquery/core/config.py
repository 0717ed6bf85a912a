from pydantic_settings import BaseSettings, SettingsConfigDict

from metaquery.gateway.types import ProviderId


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Process-level provider credentials (used when the caller sends none)
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""
    grok_api_key: str = ""

    # Transport timeout per provider call; the gateway adds no timeout of its own
    provider_timeout_seconds: float = 120.0

    # App
    app_env: str = "development"
    app_debug: bool = True

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True  # structured {level, timestamp, message, context} records

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable

    def default_api_keys(self) -> dict[ProviderId, str | None]:
        """Process-level credential map, one optional key per known provider."""
        return {
            ProviderId.OPENAI: self.openai_api_key or None,
            ProviderId.ANTHROPIC: self.anthropic_api_key or None,
            ProviderId.GEMINI: self.gemini_api_key or None,
            ProviderId.GROK: self.grok_api_key or None,
        }


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup."""
    errors: list[str] = []

    if settings.provider_timeout_seconds <= 0:
        errors.append("PROVIDER_TIMEOUT_SECONDS must be positive")

    if settings.app_env == "production":
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
