"""
User-facing surface the error handler talks to.

The handler never formats buttons or sends messages itself; it asks a
presenter to show a prompt and gets back the chosen action object.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from src.errors.taxonomy import ErrorSeverity, PromptChoice


class Presenter(ABC):
    """Base presenter class."""

    @abstractmethod
    async def prompt(
        self,
        severity: ErrorSeverity,
        message: str,
        choices: Sequence[PromptChoice],
    ) -> Optional[PromptChoice]:
        """Show ``message`` with ``choices``; return the chosen one, or None if dismissed."""

    @abstractmethod
    async def notify(self, message: str) -> None:
        """Short informational confirmation."""

    @abstractmethod
    async def open_url(self, url: str) -> None:
        """Offer a browser navigation to ``url``."""

    @abstractmethod
    async def copy_text(self, text: str) -> None:
        """Place ``text`` where the user can copy it."""

    @abstractmethod
    async def show_log(self, text: str) -> None:
        """Show diagnostic log contents."""

    @abstractmethod
    async def open_file(self, path: str) -> None:
        """Point the user at a local file, e.g. the kubeconfig."""

    @abstractmethod
    async def open_settings(self, key: str) -> None:
        """Point the user at a configuration setting."""

    async def dismiss_all(self) -> None:
        """Resolve every pending prompt as dismissed."""
