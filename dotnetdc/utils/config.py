"""
Configuration management with .env file support.

Loads configuration from:
1. .env file in project root (if exists)
2. Environment variables (override .env)

Usage:
    from dotnetdc.utils.config import get_config
    ilspy = get_config("ILSPY_CMD")
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SERVER_NAME = "dotnetdc"
PACKAGE_VERSION = "0.2.0"

DEFAULT_MAX_CONCURRENCY = 2
DEFAULT_MAX_FILES = 5000
DEFAULT_MAX_BYTES = 50 * 1024 * 1024
DEFAULT_TIMEOUT = 300

# Configuration cache
_config_cache: dict[str, str] = {}
_env_loaded = False


def _find_env_file() -> Path | None:
    """Find .env file by searching up from current directory."""
    # Start from the module's location and go up
    current = Path(__file__).resolve().parent

    # Search up to 5 levels
    for _ in range(5):
        env_file = current / ".env"
        if env_file.exists():
            return env_file

        parent = current.parent
        if parent == current:
            break
        current = parent

    # Also check current working directory
    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        return cwd_env

    return None


def _parse_env_file(env_path: Path) -> dict[str, str]:
    """
    Parse a .env file into a dictionary.

    Supports:
    - KEY=value
    - KEY="value with spaces"
    - KEY='value with spaces'
    - # comments
    - Empty lines
    """
    config = {}

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()

                if not line or line.startswith("#"):
                    continue

                if "=" not in line:
                    logger.warning(f".env line {line_num}: Invalid format (no '=')")
                    continue

                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()

                # Remove quotes if present
                if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                    value = value[1:-1]

                if key:
                    config[key] = value

    except OSError as e:
        logger.warning(f"Failed to parse .env file: {e}")

    return config


def load_env(force: bool = False):
    """Load configuration from .env file."""
    global _env_loaded, _config_cache

    if _env_loaded and not force:
        return

    env_file = _find_env_file()
    if env_file:
        logger.info(f"Loading configuration from: {env_file}")
        _config_cache = _parse_env_file(env_file)
        logger.debug(f"Loaded {len(_config_cache)} config values from .env")
    else:
        _config_cache = {}
        logger.debug("No .env file found")

    _env_loaded = True


def get_config(key: str, default: str | None = None) -> str | None:
    """
    Get a configuration value.

    Checks environment variables first, then .env file.

    Args:
        key: Configuration key name
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    env_value = os.environ.get(key)
    if env_value is not None:
        return env_value

    load_env()

    return _config_cache.get(key, default)


def get_config_int(key: str, default: int = 0) -> int:
    """Get an integer configuration value."""
    value = get_config(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {key}: {value!r}")
        return default


def set_env_value(key: str, value: str, env_path: Path | None = None) -> Path:
    """
    Persist a key into a .env file and the current process environment.

    An existing line for the key is replaced; otherwise the key is appended.

    Args:
        key: Configuration key name
        value: Value to store
        env_path: .env file to update (default: ./.env)

    Returns:
        Path of the updated file

    Raises:
        OSError: If the file cannot be written
    """
    os.environ[key] = value
    env_path = env_path or Path.cwd() / ".env"

    lines: list[str] = []
    if env_path.exists():
        lines = env_path.read_text(encoding="utf-8").splitlines()

    new_line = f"{key}={value}"
    replaced = False
    for i, line in enumerate(lines):
        if line.strip().startswith(key + "="):
            lines[i] = new_line
            replaced = True
    if not replaced:
        lines.append(new_line)

    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    _config_cache[key] = value
    logger.info(f"Saved {key} to {env_path}")
    return env_path


def get_max_concurrency() -> int:
    return max(1, get_config_int("MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY))


def get_max_files() -> int:
    return get_config_int("MAX_FILES", DEFAULT_MAX_FILES)


def get_max_bytes() -> int:
    return get_config_int("MAX_BYTES", DEFAULT_MAX_BYTES)


def get_timeout() -> int:
    return get_config_int("DOTNETDC_TIMEOUT", DEFAULT_TIMEOUT)


# Available configuration keys
CONFIG_KEYS = {
    # ILSpy
    "ILSPY_CMD": "Path to the ilspycmd executable (auto-detected and saved when unset)",
    "DOTNETDC_TIMEOUT": "Timeout for a single ilspycmd run (seconds, default: 300)",

    # Limits
    "MAX_CONCURRENCY": "Maximum concurrent ilspycmd processes (default: 2)",
    "MAX_FILES": "Maximum decompiled files read per request (default: 5000)",
    "MAX_BYTES": "Maximum decompiled characters read per request (default: 50 MiB)",

    # Logging
    "DOTNETDC_LOG_LEVEL": "Logging level (DEBUG, INFO, WARNING, ERROR)",
}


def get_config_status() -> dict[str, dict]:
    """
    Get status of all configuration keys.

    Returns:
        Dict with key -> {set: bool, source: str, value: str}
    """
    load_env()
    status = {}

    for key in CONFIG_KEYS:
        env_value = os.environ.get(key)
        file_value = _config_cache.get(key)

        if env_value is not None:
            status[key] = {"set": True, "source": "environment", "value": env_value}
        elif file_value is not None:
            status[key] = {"set": True, "source": ".env file", "value": file_value}
        else:
            status[key] = {"set": False, "source": None, "value": None}

    return status
