"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/config.yaml`` -- static defaults checked into the repo
  2. ``.env`` file          -- local developer overrides (not committed)
  3. Environment variables  -- set at deploy time

The YAML file groups keys into sections that mirror the ``Settings``
fields::

    cache:
      backend: storage        # -> query_cache_backend
      bucket: my-query-cache  # -> cache_bucket
    auth:
      mode: skip              # -> auth_mode

Only values explicitly provided by ``.env`` or the environment override the
YAML file; ``Settings`` defaults never do.
"""

from pathlib import Path
from typing import Any

import yaml

from querycache.config.settings import Settings
from querycache.utils.errors import ConfigurationError

# YAML section -> {yaml key: Settings field}
_SECTIONS: dict[str, dict[str, str]] = {
    "cache": {
        "backend": "query_cache_backend",
        "project_id": "google_project_id",
        "collection": "cache_collection",
        "kind": "cache_kind",
        "bucket": "cache_bucket",
        "timeout": "cache_timeout",
    },
    "auth": {
        "mode": "auth_mode",
        "eager": "auth_eager",
        "credentials": "google_application_credentials",
        "driver": "cloudsql_driver",
        "ip_type": "cloudsql_ip_type",
        "enable_iam_auth": "cloudsql_enable_iam_auth",
    },
    "app": {
        "env": "app_env",
    },
    "logging": {
        "level": "log_level",
    },
}


def load_config(path: str = "config/config.yaml") -> Settings:
    """Load YAML config and merge it with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is
              treated as empty.

    Returns:
        Fully resolved settings.

    Raises:
        ConfigurationError: If the file is not a mapping or holds unknown keys,
            or if the merged values fail validation.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"{path} must contain a mapping at the top level")

    values = _flatten(yaml_config)

    env_settings = Settings()
    env_overrides = env_settings.model_dump(include=env_settings.model_fields_set)
    _deep_merge(values, env_overrides)

    try:
        return Settings.model_validate(values)
    except ValueError as exc:
        raise ConfigurationError(message=f"Invalid configuration in {path}: {exc}") from exc


def _flatten(yaml_config: dict[str, Any]) -> dict[str, Any]:
    """Map sectioned YAML keys onto flat ``Settings`` field names."""
    values: dict[str, Any] = {}
    for section, entries in yaml_config.items():
        mapping = _SECTIONS.get(section)
        if mapping is None or not isinstance(entries, dict):
            raise ConfigurationError(message=f"Unknown configuration section: {section!r}")
        for key, value in entries.items():
            if key not in mapping:
                raise ConfigurationError(message=f"Unknown configuration key: {section}.{key}")
            values[mapping[key]] = value
    return values


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
