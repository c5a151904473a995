"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default image settings
DEFAULT_IMAGE_MAX_WIDTH = 800
DEFAULT_IMAGE_QUALITY = 85
DEFAULT_DISPLAY_MAX_WIDTH = 600
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_TEMP_DIR = "temp"

# Default cache settings
DEFAULT_CACHE_DIR = str(Path(DEFAULT_TEMP_DIR) / "cache")
DEFAULT_CACHE_MAX_AGE = 7 * 24 * 3600.0  # 7 days
DEFAULT_CACHE_MAX_SIZE = 500 * 1024 * 1024  # 500 MiB
DEFAULT_CACHE_DISABLED = False

# Cap on simultaneous HTTP requests (None: every image fetched at once)
DEFAULT_MAX_CONCURRENT_FETCHES: int | None = None

# Default retry settings
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_STRATEGY = "linear"
DEFAULT_RETRY_WAIT = 1.0

# Tokenizer preset
DEFAULT_PARSER_PRESET = "gfm-like"

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "image_max_width": DEFAULT_IMAGE_MAX_WIDTH,
        "image_quality": DEFAULT_IMAGE_QUALITY,
        "display_max_width": DEFAULT_DISPLAY_MAX_WIDTH,
        "fetch_timeout": DEFAULT_FETCH_TIMEOUT,
        "temp_dir": DEFAULT_TEMP_DIR,
        "cache_dir": DEFAULT_CACHE_DIR,
        "cache_max_age": DEFAULT_CACHE_MAX_AGE,
        "cache_max_size": DEFAULT_CACHE_MAX_SIZE,
        "cache_disabled": DEFAULT_CACHE_DISABLED,
        "max_concurrent_fetches": DEFAULT_MAX_CONCURRENT_FETCHES,
        "max_retries": DEFAULT_MAX_RETRIES,
        "retry_strategy": DEFAULT_RETRY_STRATEGY,
        "retry_wait": DEFAULT_RETRY_WAIT,
        "parser_preset": DEFAULT_PARSER_PRESET,
        "log_level": DEFAULT_LOG_LEVEL,
    }
