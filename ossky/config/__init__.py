"""Configuration module -- exports Settings and the YAML-aware loader."""

from ossky.config.loader import load_settings
from ossky.config.settings import CacheBackend, Settings, StargazersPlacement

__all__ = ["CacheBackend", "Settings", "StargazersPlacement", "load_settings"]
