"""
Diagnostics settings.

Values come from the environment (prefix ``KUBEDIAG_``) or a ``.env`` file.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_kubeconfig() -> str:
    return os.environ.get("KUBECONFIG", "~/.kube/config")


class Settings(BaseSettings):
    """Runtime configuration for the error pipeline and its Telegram surface."""

    model_config = SettingsConfigDict(
        env_prefix="KUBEDIAG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Bot
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[int] = None
    debug: bool = False

    # Throttling of user-facing prompts
    throttle_window_ms: int = Field(default=5000, ge=0)
    throttle_max_entries: int = Field(default=1024, ge=1)

    # Diagnostic log
    log_file: Optional[Path] = None
    log_buffer_lines: int = Field(default=5000, ge=1)
    log_reveal_lines: int = Field(default=60, ge=1)

    # Cluster access
    kubeconfig_path: str = Field(default_factory=_default_kubeconfig, validate_default=True)
    operation_timeout_ms: int = Field(default=30000, ge=1)

    # Links offered by remediation actions
    issue_tracker_url: str = "https://github.com/kubediag/kubediag-bot/issues/new"
    troubleshooting_url: str = "https://kubediag.dev/docs/troubleshooting#connection-errors"
    kubectl_install_url: str = "https://kubernetes.io/docs/tasks/tools/"
    rbac_docs_url: str = "https://kubernetes.io/docs/reference/access-authn-authz/rbac/"

    @field_validator("kubeconfig_path")
    @classmethod
    def expand_kubeconfig(cls, value: str) -> str:
        return os.path.expanduser(value)

    @property
    def throttle_window_seconds(self) -> float:
        return self.throttle_window_ms / 1000.0
