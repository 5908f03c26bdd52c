"""Dependency injection for the diagnostics services."""

from .container import ApplicationContainer, DIContainer, create_container

__all__ = [
    "ApplicationContainer",
    "DIContainer",
    "create_container",
]
