"""Configuration management for afssync.

Settings are read from ``~/.config/afssync/config``, a dotenv file of
``KEY=VALUE`` lines, and overridden by environment variables of the same name.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key

from .exceptions import AfsConfigError
from .utils import DEFAULT_MAX_CONCURRENCY, DEFAULT_SAS_EXPIRY_MINUTES

logger = logging.getLogger(__name__)

SOURCE_CONNECTION_STRING = "AFSSYNC_SOURCE_CONNECTION_STRING"
SOURCE_SHARE = "AFSSYNC_SOURCE_SHARE"
DESTINATION_CONNECTION_STRING = "AFSSYNC_DESTINATION_CONNECTION_STRING"
DESTINATION_SHARE = "AFSSYNC_DESTINATION_SHARE"
MAX_CONCURRENCY = "AFSSYNC_MAX_CONCURRENCY"
SAS_EXPIRY_MINUTES = "AFSSYNC_SAS_EXPIRY_MINUTES"

KNOWN_KEYS = (
    SOURCE_CONNECTION_STRING,
    SOURCE_SHARE,
    DESTINATION_CONNECTION_STRING,
    DESTINATION_SHARE,
    MAX_CONCURRENCY,
    SAS_EXPIRY_MINUTES,
)


class Config:
    """Manages afssync configuration."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file
                (default: ~/.config/afssync)
        """
        self.config_dir = config_dir or Path.home() / ".config" / "afssync"
        self.config_file = self.config_dir / "config"
        self._values: dict[str, str] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load the config file, then apply environment overrides."""
        self._values = {}
        if self.config_file.exists():
            stored = dotenv_values(self.config_file, interpolate=False)
            for key, value in stored.items():
                if value is None:
                    logger.warning(
                        "Ignoring setting %s without value in %s", key, self.config_file
                    )
                    continue
                self._values[key] = value

        for key in KNOWN_KEYS:
            env_value = os.environ.get(key)
            if env_value:
                self._values[key] = env_value

    def reload(self) -> None:
        """Re-read the config file and environment."""
        self._load_config()

    def get(self, key: str) -> Optional[str]:
        """Get a raw setting value."""
        return self._values.get(key)

    def get_config_path(self) -> Path:
        """Get the path to the config file."""
        return self.config_file

    def save(self, values: dict[str, str]) -> None:
        """Merge values into the config file.

        Existing lines, comments included, are kept; keys already present
        are updated in place.

        Args:
            values: Settings to store (keys as in KNOWN_KEYS)
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.touch(exist_ok=True)
        for key, value in sorted(values.items()):
            set_key(self.config_file, key, value)
        # Connection strings contain account keys
        self.config_file.chmod(0o600)
        self._load_config()

    @property
    def source_connection_string(self) -> Optional[str]:
        return self.get(SOURCE_CONNECTION_STRING)

    @property
    def source_share(self) -> Optional[str]:
        return self.get(SOURCE_SHARE)

    @property
    def destination_connection_string(self) -> Optional[str]:
        return self.get(DESTINATION_CONNECTION_STRING)

    @property
    def destination_share(self) -> Optional[str]:
        return self.get(DESTINATION_SHARE)

    @property
    def max_concurrency(self) -> int:
        """Global cap on concurrently executing operations."""
        return self._get_positive_int(MAX_CONCURRENCY, DEFAULT_MAX_CONCURRENCY)

    @property
    def sas_expiry_minutes(self) -> int:
        """Lifetime of copy-source SAS tokens in minutes."""
        return self._get_positive_int(SAS_EXPIRY_MINUTES, DEFAULT_SAS_EXPIRY_MINUTES)

    def _get_positive_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None:
            return default
        try:
            number = int(value)
        except ValueError as e:
            raise AfsConfigError(f"{key} must be an integer, got {value!r}") from e
        if number < 1:
            raise AfsConfigError(f"{key} must be at least 1, got {number}")
        return number

    def is_configured(self) -> bool:
        """Check whether both endpoints are configured."""
        return all(
            (
                self.source_connection_string,
                self.source_share,
                self.destination_connection_string,
                self.destination_share,
            )
        )


# Global config instance
config = Config()
