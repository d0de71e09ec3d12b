# src/svg_sanitizer/config.py
"""Configuration management for the SVG sanitizer.

Environment-based configuration with type-safe getters and defaults.
These functions take an env mapping (``os.environ`` by default) and return
configuration values.
"""

import os
from collections.abc import Mapping
from typing import TYPE_CHECKING

from .utils import log_warning

if TYPE_CHECKING:
    from .types import SanitizationOptions

# =============================================================================
# Constants
# =============================================================================

# CSS limits
DEFAULT_MAX_CSS_LENGTH = 100_000  # Characters kept before structural parsing
DEFAULT_MAX_NESTING_DEPTH = 10  # Deepest @media nesting kept

# Streaming
DEFAULT_CHUNK_SIZE = 64 * 1024  # Bytes read from the source per parser feed
DEFAULT_STREAM_QUEUE_SIZE = 16  # Chunks buffered between producer and consumer

# Wide event sampling
DEFAULT_EVENT_SAMPLE_RATE = 0.10
SLOW_SANITIZE_THRESHOLD_MS = 1000

# Environment variable names
ENV_ALLOW_URIS = "SVG_SANITIZER_ALLOW_URIS"
ENV_STRICT_PROPERTIES = "SVG_SANITIZER_STRICT_PROPERTIES"
ENV_MAX_CSS_LENGTH = "SVG_SANITIZER_MAX_CSS_LENGTH"
ENV_MAX_NESTING_DEPTH = "SVG_SANITIZER_MAX_NESTING_DEPTH"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# =============================================================================
# Configuration Getters
# =============================================================================


def get_config_value(
    env: Mapping[str, str],
    env_key: str,
    default: int | float,
    value_type: type[int] | type[float] = int,
) -> int | float:
    """Get a configuration value from environment with type conversion.

    Args:
        env: Mapping of environment variables
        env_key: The environment variable name
        default: Default value if not set or on error
        value_type: Type to convert to (int or float)

    Returns:
        The configured value or default.
    """
    try:
        value = env.get(env_key)
        return value_type(value) if value else default
    except (ValueError, TypeError) as e:
        log_warning(
            "config_validation_error",
            config_key=env_key,
            error=str(e),
        )
        return default


def get_flag(env: Mapping[str, str], env_key: str, default: bool = False) -> bool:
    """Get a boolean flag from environment ("1"/"true"/"yes"/"on" and opposites)."""
    value = env.get(env_key)
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    log_warning(
        "config_validation_error",
        config_key=env_key,
        error=f"not a boolean: {value!r}",
    )
    return default


def options_from_env(env: Mapping[str, str] | None = None) -> "SanitizationOptions":
    """Build SanitizationOptions from environment variables.

    Unparsable values fall back to the defaults. Parsable but invalid values
    (e.g. a negative length) raise ConfigurationError from the options class.
    """
    from .types import SanitizationOptions

    if env is None:
        env = os.environ

    return SanitizationOptions(
        allow_uris=get_flag(env, ENV_ALLOW_URIS),
        strict_property_whitelist=get_flag(env, ENV_STRICT_PROPERTIES),
        max_css_length=int(get_config_value(env, ENV_MAX_CSS_LENGTH, DEFAULT_MAX_CSS_LENGTH)),
        max_nesting_depth=int(
            get_config_value(env, ENV_MAX_NESTING_DEPTH, DEFAULT_MAX_NESTING_DEPTH)
        ),
    )
