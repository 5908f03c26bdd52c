"""Main entry point for the cluster diagnostics bot."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import structlog
from telegram import Update
from telegram.ext import Application, ApplicationBuilder, ContextTypes

from src import __version__
from src.bot.commands import register_commands
from src.config import Settings, load_config
from src.di import ApplicationContainer, create_container
from src.errors import ConfigurationError
from src.ui.telegram import TelegramPresenter


def setup_logging(debug: bool = False) -> None:
    """Configure structured logging."""
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.dev.ConsoleRenderer(colors=True)
                if debug
                else structlog.processors.JSONRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Kubernetes cluster diagnostics bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"kubediag-bot {__version__}"
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    parser.add_argument("--config-file", type=Path, help="Path to .env configuration file")

    return parser.parse_args()


async def report_update_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Report failures escaping Telegram handlers through the error pipeline."""
    diagnostics = context.bot_data.get("diagnostics")
    if diagnostics is None or context.error is None:
        return
    operation = "handle update" if isinstance(update, Update) else "background job"
    await diagnostics.handle_failure(context.error, operation)


async def create_application(config: Settings) -> tuple[Application, ApplicationContainer]:
    """Build the Telegram application and the diagnostics container."""
    logger = structlog.get_logger()

    if not config.telegram_bot_token or config.telegram_chat_id is None:
        raise ConfigurationError(
            "telegram_bot_token and telegram_chat_id are required",
            config_key="telegram_bot_token",
        )

    # Prompts await a button click that arrives as a separate update.
    application = (
        ApplicationBuilder()
        .token(config.telegram_bot_token)
        .concurrent_updates(True)
        .build()
    )
    presenter = TelegramPresenter(application.bot, config.telegram_chat_id)

    container = await create_container(config, presenter)
    application.bot_data.update(container.bot_data())

    application.add_handler(presenter.callback_handler())
    register_commands(application)
    application.add_error_handler(report_update_error, block=False)

    logger.info("Application components created", chat_id=config.telegram_chat_id)
    return application, container


async def run_application(application: Application, container: ApplicationContainer) -> None:
    """Run polling until a shutdown signal arrives."""
    logger = structlog.get_logger()
    shutdown_event = asyncio.Event()

    def signal_handler(signum, frame):
        logger.info("Shutdown signal received", signal=signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("Starting diagnostics bot")
        await application.initialize()
        await application.start()
        await application.updater.start_polling()
        await shutdown_event.wait()
    finally:
        logger.info("Shutting down application")

        try:
            await container.shutdown()
            if application.updater.running:
                await application.updater.stop()
            if application.running:
                await application.stop()
            await application.shutdown()
        except Exception as e:
            logger.error("Error during shutdown", error=str(e))

        logger.info("Application shutdown complete")


async def main() -> None:
    """Main application entry point."""
    args = parse_args()

    setup_logging(debug=args.debug)

    logger = structlog.get_logger()
    logger.info("Starting kubediag-bot", version=__version__)

    try:
        config = load_config(config_file=args.config_file)
        if config.debug and not args.debug:
            setup_logging(debug=True)

        application, container = await create_application(config)
        await run_application(application, container)

    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error", error=str(e))
        sys.exit(1)


def run() -> None:
    """Synchronous entry point for the console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
