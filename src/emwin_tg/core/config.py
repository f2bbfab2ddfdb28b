"""emwin-tg configuration.

Application settings loaded from environment variables with EMWIN_ prefix.

Example:
    >>> from emwin_tg.core.config import get_settings
    >>> settings = get_settings(log_level="DEBUG")
    >>> settings.log_level
    'DEBUG'
    >>> settings.buffer_capacity
    50
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from emwin_tg import __version__

# Identity sent as User-Agent by the default client. The NWS has restricted
# other APIs to clients that identify themselves.
DEFAULT_USER_AGENT = f"emwin-tg/{__version__} (+https://github.com/willglynn/emwin)"

MAX_MEMBER_SIZE = 8 << 20


class Settings(BaseSettings):
    """Application settings.

    Loads from environment variables with EMWIN_ prefix.

    Example:
        >>> from emwin_tg.core.config import Settings
        >>> s = Settings(fetch_attempts=5)
        >>> s.fetch_attempts
        5
        >>> s.retention_window.total_seconds()
        21600.0
    """

    model_config = SettingsConfigDict(
        env_prefix="EMWIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Network
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    request_timeout: float = Field(default=30.0, gt=0.0, description="Per-operation HTTP timeout")

    # Fetch cycle
    fetch_attempts: int = Field(default=3, ge=1, description="Attempts per tick")
    retry_delay: float = Field(default=4.0, ge=0.0, description="Seconds between attempts")

    # Delivery and dedup
    buffer_capacity: int = Field(default=50, ge=1, description="Pending products before backpressure")
    retention_window: timedelta = Field(default=timedelta(hours=6))
    max_member_size: int = Field(default=MAX_MEMBER_SIZE, ge=1, description="Largest archive member read")

    # Logging / metrics
    log_level: str = Field(default="INFO", description="Logging level")
    enable_metrics: bool = Field(default=False, description="Export Prometheus metrics")


def get_settings(**overrides: Any) -> Settings:
    """Get settings with optional overrides.

    Example:
        >>> from emwin_tg.core.config import get_settings
        >>> s = get_settings(retry_delay=0.5)
        >>> s.retry_delay
        0.5
    """
    return Settings(**overrides)
