"""Configuration: pydantic-settings `Settings` and the YAML `load_config`."""

from querycache.config.loader import load_config
from querycache.config.settings import Settings

__all__ = ["Settings", "load_config"]
