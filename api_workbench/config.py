"""
Application settings for the API Workbench.

Values are read from the environment (prefix ``WORKBENCH_``) or a local
``.env`` file.
"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./api_workbench.db"

    # Executor settings
    request_timeout: float = 30.0  # seconds, HTTP round-trip and WebSocket open
    stream_inactivity_timeout: float = 30.0  # seconds without a frame before a stream is closed
    connection_ack_timeout: float = 5.0  # seconds to wait for connection_ack
    user_agent: str = "ApiWorkbench/1.0"
    follow_redirects: bool = True
    verify_ssl: bool = True

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="WORKBENCH_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the package logger."""
    package_logger = logging.getLogger("api_workbench")
    package_logger.setLevel((level or get_settings().log_level).upper())
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
