"""Configuration for the diagnostics bot."""

from .loader import load_config
from .settings import Settings

__all__ = ["Settings", "load_config"]
