"""Diagnostics commands: /errors and /logs."""

import structlog
from telegram import Update
from telegram.ext import CommandHandler, ContextTypes

from src.errors.decorators import report_failures

logger = structlog.get_logger(__name__)


@report_failures("show error summary")
async def errors_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Reply with per-kind error counts."""
    metrics = context.bot_data["error_metrics"]
    summary = metrics.summary()

    if not summary:
        await update.effective_message.reply_text("✅ No errors recorded.")
        return

    lines = ["📊 Errors by kind:"]
    for kind, count in sorted(summary.items(), key=lambda item: (-item[1], item[0])):
        lines.append(f"• {kind}: {count}")
    lines.append(f"\nTotal: {metrics.total()}")

    await update.effective_message.reply_text("\n".join(lines))
    logger.info("Error summary sent", total=metrics.total())


@report_failures("reveal diagnostic log")
async def logs_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Reveal the tail of the diagnostic log."""
    await context.bot_data["diagnostic_sink"].reveal()


def register_commands(application) -> None:
    """Register diagnostics command handlers."""
    application.add_handler(CommandHandler("errors", errors_command))
    application.add_handler(CommandHandler("logs", logs_command))
