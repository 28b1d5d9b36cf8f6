# cuhzbot/core/config.py

import pathlib
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root is 3 levels up from this file (cuhzbot/core/config.py).
_PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent.parent
_ENV_PATH_FILE = _PROJECT_ROOT / ".env.path"


def _resolve_env_file() -> pathlib.Path | None:
    """Return the .env file named in .env.path, or None to use the environment only."""
    if not _ENV_PATH_FILE.exists():
        return None

    env_file = pathlib.Path(_ENV_PATH_FILE.read_text().strip())
    if not env_file.exists():
        raise SystemExit(
            f".env file not found at '{env_file}' (read from {_ENV_PATH_FILE}). "
            "Check that the path in .env.path is correct."
        )
    return env_file


class Settings(BaseSettings):
    """
    Manages all application settings.
    Loads variables from the process environment and, if present,
    the .env file whose path is in .env.path.
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8", extra="ignore"
    )

    # Twitch Bot Settings
    TWITCH_CLIENT_ID: str
    TWITCH_CLIENT_SECRET: str
    TWITCH_BOT_ID: str
    TWITCH_BOT_USERNAME: str | None = None
    TWITCH_OWNER_ID: str | None = None

    # Seed user token for the bot account (optional once the OAuth flow has run)
    TWITCH_BOT_TOKEN: str | None = None
    TWITCH_BOT_REFRESH_TOKEN: str | None = None

    # Dashboard API (directory + verify) and the command webhook
    API_BASE: str
    BOT_API_SECRET: str
    WEBHOOK_URL: str
    WEBHOOK_TOKEN: str
    DASHBOARD_URL: str | None = None

    # Timing and per-channel defaults
    POLL_INTERVAL_MS: int = Field(default=60_000, gt=0)
    JOIN_DELAY_MS: int = Field(default=650, gt=0)
    DEFAULT_COOLDOWN_MS: int = Field(default=30_000, ge=0)
    PROMO_INTERVAL_MS: int = Field(default=30 * 60 * 1000, gt=0)
    MAX_PROMPT_LEN_DEFAULT: int = Field(default=220, gt=0)
    DEFAULT_SAFE_MODE: bool = True

    # Observability (optional)
    SENTRY_DSN: str | None = None
    BOT_LOGS_WEBHOOK_URL: str | None = None

    @field_validator(
        "TWITCH_CLIENT_ID",
        "TWITCH_CLIENT_SECRET",
        "TWITCH_BOT_ID",
        "API_BASE",
        "BOT_API_SECRET",
        "WEBHOOK_URL",
        "WEBHOOK_TOKEN",
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("TWITCH_BOT_TOKEN")
    @classmethod
    def _strip_oauth_prefix(cls, value: str | None) -> str | None:
        # Tokens copied from chat tooling carry an "oauth:" prefix the Helix API rejects.
        if value and value.startswith("oauth:"):
            return value[len("oauth:"):]
        return value

    @model_validator(mode="after")
    def _fill_dashboard_url(self) -> "Settings":
        self.API_BASE = self.API_BASE.rstrip("/")
        if not self.DASHBOARD_URL:
            self.DASHBOARD_URL = f"{self.API_BASE}/dashboard"
        return self


def load_settings() -> Settings:
    """Build Settings, turning a validation failure into a one-shot fatal exit."""
    env_file = _resolve_env_file()
    try:
        if env_file is None:
            return Settings()
        return Settings(_env_file=str(env_file))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise SystemExit(f"Invalid configuration: {problems}") from None


# Create a single, importable instance of our settings.
# This instance will be created only once when the module is first imported.
settings = load_settings()
