"""User-facing presentation of error prompts."""

from .presenter import Presenter

__all__ = ["Presenter"]
