"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Potluck"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"  # Bind to all interfaces for external access
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./potluck.db"
    db_busy_timeout: float = 30.0  # Seconds a writer waits for the SQLite lock

    # Logging; an empty log_dir sends logs to stderr
    log_dir: str = "~/.logs/potluck"

    # Feed
    feed_page_size: int = 50

    # Dishes older than this are not offered for linking to a meal
    available_dish_days: int = 30


settings = Settings()
