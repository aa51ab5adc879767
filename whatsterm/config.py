from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine.url import make_url, URL

DEFAULT_DATABASE_NAME = "whatsterm"
DEFAULT_AUTH_STATE_PATH = "./auth_info"

# Project root (parent of whatsterm/) - used so .env is found regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Explicitly load .env into os.environ so it works in tests and subprocesses
load_dotenv(_PROJECT_ROOT / ".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", json_schema_extra={"env": "LOG_LEVEL"})

    # Required: the process fails fast without it
    database_url: str = Field(json_schema_extra={"env": "DATABASE_URL"})
    database_name: str = Field(
        default=DEFAULT_DATABASE_NAME, json_schema_extra={"env": "DATABASE_NAME"}
    )
    database_pool_size: int = Field(
        default=10, json_schema_extra={"env": "DATABASE_POOL_SIZE"}
    )
    database_max_overflow: int = Field(
        default=20, json_schema_extra={"env": "DATABASE_MAX_OVERFLOW"}
    )
    db_auto_create: bool = Field(
        default=True, json_schema_extra={"env": "DB_AUTO_CREATE"}
    )

    # WhatsApp socket
    auth_state_path: str = Field(
        default=DEFAULT_AUTH_STATE_PATH, json_schema_extra={"env": "AUTH_STATE_PATH"}
    )
    socket_factory: Optional[str] = Field(
        default=None, json_schema_extra={"env": "SOCKET_FACTORY"}
    )
    protocol_version: Optional[str] = Field(
        default=None, json_schema_extra={"env": "PROTOCOL_VERSION"}
    )
    print_qr_in_terminal: bool = Field(
        default=True, json_schema_extra={"env": "PRINT_QR_IN_TERMINAL"}
    )

    # Reconnect policy
    reconnect_max_attempts: int = Field(
        default=5, ge=0, json_schema_extra={"env": "RECONNECT_MAX_ATTEMPTS"}
    )
    reconnect_backoff_seconds: float = Field(
        default=0.0, ge=0, json_schema_extra={"env": "RECONNECT_BACKOFF_SECONDS"}
    )
    reconnect_backoff_max_seconds: float = Field(
        default=30.0, ge=0, json_schema_extra={"env": "RECONNECT_BACKOFF_MAX_SECONDS"}
    )

    @property
    def database_url_obj(self) -> URL:
        """Return the database URL, filling in database_name when the URL names no database."""
        if not self.database_url:
            raise ValueError("Database URL is not set.")
        url = make_url(self.database_url)
        # SQLite's database component is a file path; an empty one means memory
        if not url.database and url.get_backend_name() != "sqlite":
            url = url.set(database=self.database_name)
        return url


def get_settings() -> Settings:
    """Get application settings with required environment variables."""
    return Settings()
