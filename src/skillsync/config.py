import os
from pathlib import Path
from typing import Dict, Optional

from .domain.errors import ConfigError

CONFIG_DIR = Path(os.environ.get("SKILLSYNC_HOME", Path.home() / ".skillsync"))
CONFIG_FILE = CONFIG_DIR / "config"
SESSION_FILE = CONFIG_DIR / "session.json"

API_KEY = "SKILLSYNC_API_KEY"
PROVIDER_TIMEOUT = "SKILLSYNC_PROVIDER_TIMEOUT"

DEFAULT_PROVIDER_TIMEOUT = 15.0


def read_config(config_file: Path = CONFIG_FILE) -> Dict[str, str]:
    """read all KEY=value pairs from the config file."""
    config = {}
    if not config_file.exists():
        return config

    try:
        with open(config_file, "r") as f:
            for line in f:
                line = line.strip()
                if "=" in line and not line.startswith("#"):
                    key, value = line.split("=", 1)
                    config[key.strip()] = value.strip()
    except (IOError, PermissionError, OSError):
        # if we can't read the file, treat as not configured
        return {}
    return config


def get_config_value(key: str, config_file: Path = CONFIG_FILE) -> Optional[str]:
    """get a config value. environment variables win over the config file."""
    value = os.environ.get(key)
    if value:
        return value
    return read_config(config_file).get(key)


def set_config_value(key: str, value: str, config_file: Path = CONFIG_FILE):
    """set a value in the config file, preserving other config values."""
    config_file.parent.mkdir(parents=True, exist_ok=True)

    config = read_config(config_file)
    config[key] = value

    try:
        with open(config_file, "w") as f:
            for k, v in config.items():
                f.write(f"{k}={v}\n")
    except (IOError, PermissionError, OSError) as e:
        raise ConfigError(f"failed to write config file: {e}") from e


def get_api_key(config_file: Path = CONFIG_FILE) -> str:
    """
    get the identity provider API key.

    raises:
        ConfigError: if no key is configured
    """
    key = get_config_value(API_KEY, config_file)
    if not key:
        raise ConfigError(
            "No API key configured. Set one with:\n"
            "  skillsync config set-api-key <key>"
        )
    return key


def get_provider_timeout(config_file: Path = CONFIG_FILE) -> float:
    """
    get the timeout in seconds applied to each identity provider call.

    raises:
        ConfigError: if the configured value is not a positive number
    """
    raw = get_config_value(PROVIDER_TIMEOUT, config_file)
    if raw is None:
        return DEFAULT_PROVIDER_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigError(f"{PROVIDER_TIMEOUT} must be a number, got '{raw}'")
    if timeout <= 0:
        raise ConfigError(f"{PROVIDER_TIMEOUT} must be positive, got '{raw}'")
    return timeout
