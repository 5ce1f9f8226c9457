"""Settings loading: defaults, optional YAML file, CLI overrides, API key."""

import logging
import os
from dataclasses import dataclass, fields, replace

import yaml

from devbox.errors import ConfigError
from devbox.redact import register_secret

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/devbox/config.yaml"
API_KEY_ENV_VAR = "VULTR_API_KEY"


@dataclass
class Settings:
    """Everything a provisioning run needs besides the API secret."""

    region: str = "ewr"  # New Jersey
    plan: str = "vc2-1c-1gb"  # 1 vCPU, 1 GB RAM
    image: str = "ubuntu-24.04"
    label_prefix: str = "tiny-box"
    user: str = "root"
    key_dir: str = "~/.ssh/vultr"
    ssh_config: str = "~/.ssh/config"
    state_file: str = "~/.local/state/devbox/instances.json"
    api_url: str = "https://api.vultr.com"
    api_key_file: str = "~/.auth/vultr"
    status_timeout: int = 600
    status_interval: float = 5
    ssh_attempts: int = 30
    ssh_interval: float = 5
    ssh_connect_timeout: int = 5

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def path(self, name) -> str:
        """Expanded filesystem path for a path-valued setting."""
        return _expand_path(getattr(self, name))


def load_settings(config_path=None) -> Settings:
    """Load settings from YAML, falling back to defaults.

    An explicit *config_path* must exist; the default path is optional.

    Raises:
        ConfigError: on a missing explicit file, bad YAML, or unknown keys.
    """
    path = _expand_path(config_path or DEFAULT_CONFIG_PATH)
    if not os.path.exists(path):
        if config_path:
            raise ConfigError(f"Config file '{config_path}' not found.")
        return Settings()

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown setting(s) in {path}: {', '.join(unknown)}")

    logger.debug(f"Loaded settings from {path}")
    return Settings(**data)


def resolve_api_key(cli_value=None, settings=None) -> str:
    """Return the Vultr API key from the CLI flag, env var, or key file.

    Raises:
        ConfigError: if none of the three provides a key.
    """
    settings = settings or Settings()
    api_key = cli_value or os.environ.get(API_KEY_ENV_VAR)
    if not api_key:
        key_file = settings.path("api_key_file")
        if os.path.isfile(key_file):
            with open(key_file) as f:
                api_key = f.read().strip()
    if not api_key:
        raise ConfigError(
            f"No Vultr API key found. Use --api-key, set {API_KEY_ENV_VAR}, or write it to {settings.api_key_file}."
        )
    register_secret(api_key)
    return api_key


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path))
