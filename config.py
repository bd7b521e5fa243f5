# config.py
import logging
import os
import secrets

from dotenv import load_dotenv

# Load environment variables from .env file.
load_dotenv()

logger = logging.getLogger(__name__)

_config: dict | None = None


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s '%s', falling back to %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%s is below %s, falling back to %s", name, raw, minimum, default)
        return default
    return value


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(float(raw))
    except ValueError:
        logger.warning("Invalid %s '%s', falling back to %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%s is below %s, falling back to %s", name, raw, minimum, default)
        return default
    return value


def load_config():
    """
    Loads configuration from environment variables and returns a dictionary.
    """
    config = {
        # General Settings
        "DEBUG_MODE": os.getenv("DEBUG_MODE", "False").lower() == "true",
        "WEB_HOST": os.getenv("WEB_HOST", "0.0.0.0"),
        "WEB_PORT": _env_int("WEB_PORT", 3000, minimum=1),
        "SECRET_KEY": os.getenv("SECRET_KEY") or secrets.token_hex(32),

        # Google Cloud CLI
        "GCLOUD_BINARY": os.getenv("GCLOUD_BINARY", "gcloud"),
        "GSUTIL_BINARY": os.getenv("GSUTIL_BINARY", "gsutil"),
        "STORAGE_BUCKET_SUFFIX": os.getenv("STORAGE_BUCKET_SUFFIX", "firebasestorage.app"),
        # 0 disables the per-command timeout; the CLI enforces its own.
        "GCLOUD_COMMAND_TIMEOUT": _env_float("GCLOUD_COMMAND_TIMEOUT", 0.0),

        # Restore Polling
        "POLL_INTERVAL_SECONDS": _env_float("POLL_INTERVAL_SECONDS", 3.0, minimum=0.1),
        "POLL_MAX_CONSECUTIVE_FAILURES": _env_int("POLL_MAX_CONSECUTIVE_FAILURES", 20, minimum=1),
        "OPERATIONS_LIST_LIMIT": _env_int("OPERATIONS_LIST_LIMIT", 10, minimum=1),
    }
    return config


def get_config() -> dict:
    """Returns the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


if __name__ == "__main__":
    # For testing purposes, print the configuration
    config = load_config()
    from pprint import pprint

    pprint({k: ("***" if k == "SECRET_KEY" else v) for k, v in config.items()})
