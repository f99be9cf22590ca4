"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults, grouped in sections
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

Sections in the YAML file are flattened onto setting names, so::

    cache:
      bucket: my-bucket
      default_ttl_seconds: 3600

becomes ``cache_bucket`` and ``cache_default_ttl_seconds``.
"""

from pathlib import Path
from typing import Any

import yaml

from ossky.config.settings import Settings


def load_settings(path: str = "config/config.yaml", **overrides: Any) -> Settings:
    """Build :class:`Settings` from YAML defaults, the environment and *overrides*.

    Environment variables (and ``.env``) win over YAML values; explicit
    *overrides* (e.g. CLI flags) win over both.  ``None`` overrides are
    ignored so unset CLI flags do not clobber configured values.

    Args:
        path: Path to the YAML configuration file. Missing files are ignored.
        **overrides: Setting values that take precedence over everything else.

    Returns:
        Fully resolved settings.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    values = _flatten(yaml_config)

    # Fields set explicitly through env / .env are the ones pydantic-settings
    # records in model_fields_set; only those beat the YAML file.
    env_settings = Settings()
    values.update(env_settings.model_dump(include=env_settings.model_fields_set))
    values.update({key: value for key, value in overrides.items() if value is not None})

    known = Settings.model_fields
    return Settings(**{key: value for key, value in values.items() if key in known})


def _flatten(config: dict, prefix: str = "") -> dict[str, Any]:
    """Flatten nested sections into ``section_key`` names."""
    flat: dict[str, Any] = {}
    for key, value in config.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat
