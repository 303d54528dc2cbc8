"""Application configuration pulled from environment variables via pydantic."""
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the weather bot."""
    model_config = SettingsConfigDict(
        env_prefix="WEATHERBOT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Both credentials also accept the bare variable names used in deployments.
    telegram_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WEATHERBOT_TELEGRAM_TOKEN", "TELEGRAM_TOKEN"),
    )
    owm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WEATHERBOT_OWM_API_KEY", "OWM_API_KEY"),
    )

    weather_source: str = "openweathermap"  # options: openweathermap
    owm_base_url: str = "https://api.openweathermap.org/data/2.5"
    owm_units: str = "metric"
    owm_lang: str = "en"
    telegram_base_url: str = "https://api.telegram.org"
    request_timeout_seconds: float = 10.0
    poll_timeout_seconds: int = 60
    worker_count: int = Field(default=4, ge=1)
    run_mode: str = "polling"  # options: polling, webhook
    webhook_url: str | None = None
    webhook_secret: str | None = None
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @field_validator("owm_base_url", "telegram_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("run_mode", mode="after")
    @classmethod
    def check_run_mode(cls, v: str) -> str:
        """Accept only the supported update delivery modes."""
        mode = v.lower()
        if mode not in ("polling", "webhook"):
            raise ValueError(f"run_mode must be 'polling' or 'webhook', got '{v}'")
        return mode


def missing_credentials(cfg: Settings) -> list[str]:
    """Return the names of required credentials that are not set."""
    missing = []
    if not cfg.telegram_token:
        missing.append("TELEGRAM_TOKEN")
    if not cfg.owm_api_key:
        missing.append("OWM_API_KEY")
    return missing


def ensure_credentials(cfg: Settings) -> None:
    """Exit the process if a required credential is missing."""
    missing = missing_credentials(cfg)
    if missing:
        logger.error(f"Missing required credentials: {', '.join(missing)}")
        raise SystemExit(1)


settings = Settings()
