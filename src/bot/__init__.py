"""Telegram command surface for the diagnostics services."""

from .commands import register_commands

__all__ = ["register_commands"]
