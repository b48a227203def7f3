from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Platform the demo runner binds to (slack | telegram)
    platform: str = "slack"

    # Slack
    slack_bot_token: str = ""
    slack_app_token: str = ""
    slack_signing_secret: str = ""
    slack_socket_mode: bool = False
    slack_port: int = 3000

    # Telegram
    telegram_bot_token: str = ""

    # Reference cache (message id -> channel context)
    reference_cache_size: int = 1000
    reference_cache_ttl_ms: int = 60 * 60 * 1000
    reference_cache_stats_interval: int = 1000

    # Logging
    log_level: str = "INFO"
    log_dir: str = str(BASE_DIR / "logs")


settings = Settings()
