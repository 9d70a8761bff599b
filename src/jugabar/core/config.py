"""Configuration management for JugaBar"""

import math
import os
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from jugabar.shared.constants import (
    DEFAULT_REFRESH_INTERVAL,
    DIRECTORY_PAGE_SIZE,
    DIRECTORY_PAGES,
)
from jugabar.shared.exceptions import ConfigurationError


def get_db_path() -> Path:
    """Get database path that works both for an installed user and locally.

    Priority order:
    1. User path: ~/.jugabar/jugabar.db (if ~/.jugabar exists)
    2. Local development path: project_root/data/jugabar.db

    Returns:
        Path object for the database file
    """
    user_path = Path.home() / ".jugabar" / "jugabar.db"
    if user_path.parent.exists():
        logger.debug(f"Using user database path: {user_path}")
        return user_path

    # Use __file__ to reliably find project root from config.py location
    project_root = Path(__file__).parent.parent.parent.parent
    local_path = project_root / "data" / "jugabar.db"

    local_path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Using local database path: {local_path}")
    return local_path


def _read_number(name: str, default: float, cast: type = float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a finite number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} cannot be negative, got {raw!r}")
    return value


@dataclass
class Config:
    """Configuration for JugaBar loaded from environment variables"""

    db_path: str
    default_refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    http_timeout: float = 10.0
    directory_pages: int = DIRECTORY_PAGES
    directory_page_size: int = DIRECTORY_PAGE_SIZE

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables

        Returns:
            Config instance with values from environment

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        db_path = os.getenv("JUGABAR_DB_PATH") or str(get_db_path())

        config = cls(
            db_path=db_path,
            default_refresh_interval=_read_number(
                "JUGABAR_REFRESH_INTERVAL", cls.default_refresh_interval
            ),
            http_timeout=_read_number("JUGABAR_HTTP_TIMEOUT", cls.http_timeout),
            directory_pages=int(
                _read_number("JUGABAR_DIRECTORY_PAGES", cls.directory_pages, int)
            ),
            directory_page_size=int(
                _read_number(
                    "JUGABAR_DIRECTORY_PAGE_SIZE", cls.directory_page_size, int
                )
            ),
        )

        if config.http_timeout == 0:
            raise ConfigurationError("JUGABAR_HTTP_TIMEOUT must be positive")

        logger.info("Configuration loaded:")
        logger.info(f"  Database: {config.db_path}")
        logger.info(
            f"  Default Refresh Interval: {config.default_refresh_interval}s"
        )
        logger.info(f"  HTTP Timeout: {config.http_timeout}s")
        logger.info(
            f"  Directory: {config.directory_pages} pages x {config.directory_page_size}"
        )

        return config
