"""Configuration for the bookmarks service."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_IMPORT_PREFIX = "Imported Bookmarks"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Config:
    """Main configuration for the bookmarks service."""
    store_path: Optional[Path] = None  # None = use platform default
    import_folder_prefix: str = DEFAULT_IMPORT_PREFIX  # Name prefix for import folders
    log_level: str = DEFAULT_LOG_LEVEL  # Unknown level names fall back to this

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        store_path_str = os.environ.get("TINYMARKS_STORE_PATH")
        store_path = Path(store_path_str).expanduser() if store_path_str else None

        log_level = os.environ.get("TINYMARKS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            log_level = DEFAULT_LOG_LEVEL

        return cls(
            store_path=store_path,
            import_folder_prefix=os.environ.get("TINYMARKS_IMPORT_PREFIX", DEFAULT_IMPORT_PREFIX),
            log_level=log_level,
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config
