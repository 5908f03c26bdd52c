"""
Central error handler.

Every classified failure passes through ``ErrorHandler.handle_error``:
log, count, throttle check, prompt, then resolve the chosen action.
Logging and counting never fail the call; failures inside a chosen action
propagate to the caller.
"""

from typing import TYPE_CHECKING, Optional

import structlog

from .. import __version__
from .formatting import build_choices, build_issue_url, format_details_for_copy, format_display_message
from .metrics import ErrorMetrics
from .sink import DiagnosticSink
from .taxonomy import BuiltinAction, ErrorAction, ErrorReport, PromptChoice
from .throttle import ThrottleWindow

if TYPE_CHECKING:
    from src.ui.presenter import Presenter

logger = structlog.get_logger(__name__)

DEFAULT_ISSUE_TRACKER_URL = "https://github.com/kubediag/kubediag-bot/issues/new"


class ErrorHandler:
    """Orchestrates logging, metrics, throttling, notification and action handling."""

    def __init__(
        self,
        sink: DiagnosticSink,
        metrics: ErrorMetrics,
        presenter: "Presenter",
        throttle: Optional[ThrottleWindow] = None,
        issue_tracker_url: str = DEFAULT_ISSUE_TRACKER_URL,
        app_version: str = __version__,
    ):
        self.sink = sink
        self.metrics = metrics
        self.presenter = presenter
        self.throttle = throttle if throttle is not None else ThrottleWindow()
        self.issue_tracker_url = issue_tracker_url
        self.app_version = app_version

    async def handle_error(self, report: ErrorReport) -> None:
        """Process one error occurrence."""
        # Log, count and throttle run before the first suspension point.
        self._log(report)
        self._count(report)

        if self.throttle.should_suppress(report.throttle_key):
            logger.debug("Error prompt throttled", kind=report.kind.value, message=report.message)
            self.sink.write("Error throttled - not showing notification", "debug")
            return

        choice = await self.presenter.prompt(
            report.severity,
            format_display_message(report),
            build_choices(report),
        )
        await self._resolve(choice, report)

    def _log(self, report: ErrorReport) -> None:
        try:
            self.sink.write_report(report)
            logger.info("error_reported", **report.to_dict())
        except Exception as e:
            logger.error("Failed to log error report", error=str(e), error_type=type(e).__name__)

    def _count(self, report: ErrorReport) -> None:
        try:
            self.metrics.record(report.kind)
        except Exception as e:
            logger.error("Failed to record error metric", error=str(e), error_type=type(e).__name__)

    async def _resolve(self, choice: Optional[PromptChoice], report: ErrorReport) -> None:
        if choice is None:
            logger.debug("Error prompt dismissed", kind=report.kind.value)
            return

        logger.info("Error action chosen", kind=report.kind.value, action=choice.label)

        if isinstance(choice, ErrorAction):
            if not any(choice is action for action in report.actions):
                logger.warning("Chosen action does not belong to report", action=choice.label)
                return
            await choice.execute()
            return

        if choice is BuiltinAction.VIEW_LOGS:
            await self.sink.reveal()
        elif choice is BuiltinAction.REPORT_ISSUE:
            await self.report_issue(report)
        elif choice is BuiltinAction.COPY_DETAILS:
            await self.copy_error_details(report)

    async def report_issue(self, report: ErrorReport) -> None:
        """Open the issue tracker with a pre-filled bug report."""
        url = build_issue_url(self.issue_tracker_url, report, self.app_version)
        await self.presenter.open_url(url)

    async def copy_error_details(self, report: ErrorReport) -> None:
        await self.presenter.copy_text(format_details_for_copy(report))
        await self.presenter.notify("Error details copied to clipboard")
