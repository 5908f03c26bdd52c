"""
Error reporting decorator for Telegram handlers.

Wraps an async ``(update, context)`` handler so that any failure it raises
is classified and reported once through the domain handlers registered in
``context.bot_data["diagnostics"]``.
"""

import functools
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

DIAGNOSTICS_KEY = "diagnostics"


def report_failures(operation: Optional[str] = None, reraise: bool = False):
    """
    Report failures raised by the wrapped handler.

    Args:
        operation: Name for operation identification (defaults to the function name)
        reraise: Re-raise the failure after it has been reported
    """
    def decorator(func: Callable) -> Callable:
        op_name = operation or func.__name__

        @functools.wraps(func)
        async def wrapper(update: Any, context: Any, *args, **kwargs) -> Any:
            try:
                return await func(update, context, *args, **kwargs)
            except Exception as e:
                diagnostics = getattr(context, "bot_data", {}).get(DIAGNOSTICS_KEY)
                if diagnostics is None:
                    logger.error(
                        "Failure in handler with no diagnostics registered",
                        operation=op_name,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise

                logger.warning("Reporting handler failure", operation=op_name, error_type=type(e).__name__)
                await diagnostics.handle_failure(e, op_name)

                if reraise:
                    raise
                return None

        return wrapper

    return decorator
