"""Settings loading."""

from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from src.errors.exceptions import ConfigurationError

from .settings import Settings

logger = structlog.get_logger(__name__)


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> Settings:
    """Build Settings from the environment, an optional env file and overrides."""
    if config_file is not None and not config_file.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_file}",
            config_key="config_file",
        )

    try:
        if config_file is not None:
            settings = Settings(_env_file=config_file, **overrides)
        else:
            settings = Settings(**overrides)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        logger.error("Invalid configuration", fields=fields, error=str(e))
        raise ConfigurationError(
            f"Invalid configuration: {', '.join(fields)}",
            config_key=fields[0] if fields else None,
            previous_error=e,
        ) from e

    logger.debug(
        "Configuration loaded",
        config_file=str(config_file) if config_file else None,
        throttle_window_ms=settings.throttle_window_ms,
        log_file=str(settings.log_file) if settings.log_file else None,
    )
    return settings
