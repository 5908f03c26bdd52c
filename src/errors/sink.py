"""
Diagnostic sink: the append-only, human-readable log of every error report.

Entries are kept in a bounded in-memory buffer (what the user sees when the
log is revealed) and, when a log file is configured, appended to that file.
Writing never raises.
"""

import json
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, TextIO

import structlog

from .taxonomy import ErrorReport

logger = structlog.get_logger(__name__)

SEPARATOR = "=" * 80

LogViewer = Callable[[str], Awaitable[None]]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class DiagnosticSink:
    """Append-only diagnostic log with an explicit open/close lifecycle."""

    def __init__(
        self,
        log_file: Optional[Path] = None,
        max_lines: int = 5000,
        viewer: Optional[LogViewer] = None,
        reveal_lines: int = 60,
    ):
        self.log_file = Path(log_file) if log_file else None
        self.reveal_lines = reveal_lines
        self._lines: deque = deque(maxlen=max_lines)
        self._viewer = viewer
        self._stream: Optional[TextIO] = None
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> None:
        """Open the backing file, if any. Idempotent."""
        if self._opened:
            return

        if self.log_file is not None:
            try:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                self._stream = open(self.log_file, "a", encoding="utf-8")
            except OSError as e:
                logger.error("Cannot open diagnostic log file", path=str(self.log_file), error=str(e))
                self._stream = None

        self._opened = True
        logger.debug("Diagnostic sink opened", path=str(self.log_file) if self.log_file else None)

    def close(self) -> None:
        """Flush and close the backing file."""
        if self._stream is not None:
            try:
                self._stream.close()
            except OSError as e:
                logger.error("Error closing diagnostic log file", error=str(e))
            self._stream = None
        self._opened = False
        logger.debug("Diagnostic sink closed")

    def set_viewer(self, viewer: Optional[LogViewer]) -> None:
        self._viewer = viewer

    def write(self, message: str, level: str = "info") -> None:
        """Append one timestamped line."""
        self._append([f"[{_timestamp()}] [{level.upper()}] {message}"])

    def write_report(self, report: ErrorReport) -> None:
        """Append a delimited block describing the report."""
        try:
            lines = self._format_report(report)
        except Exception as e:
            logger.error("Failed to format error report", error=str(e), error_type=type(e).__name__)
            lines = [SEPARATOR, f"ERROR: {getattr(report, 'message', report)!s}", SEPARATOR, ""]
        self._append(lines)

    def _format_report(self, report: ErrorReport) -> List[str]:
        lines = [
            SEPARATOR,
            f"ERROR: {report.message}",
            SEPARATOR,
            f"Timestamp: {_timestamp()}",
            f"Kind: {report.kind.value}",
            f"Severity: {report.severity.value}",
        ]

        if report.status_code is not None:
            lines.append(f"StatusCode: {report.status_code}")

        if report.context:
            lines.append("Context:")
            lines.append(json.dumps(report.context.to_dict(), indent=2, default=str))

        if report.technical_details:
            lines.append("TechnicalDetails:")
            lines.append(report.technical_details)

        stack = report.stack
        if stack:
            lines.append("Stack:")
            lines.append(stack)

        lines.append(SEPARATOR)
        lines.append("")
        return lines

    def _append(self, lines: List[str]) -> None:
        try:
            self._lines.extend(lines)
            if self._stream is not None:
                self._stream.write("\n".join(lines) + "\n")
                self._stream.flush()
        except Exception as e:
            logger.error("Diagnostic sink write failed", error=str(e), error_type=type(e).__name__)

    def lines(self) -> List[str]:
        return list(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines)

    def tail(self, count: Optional[int] = None) -> str:
        count = count or self.reveal_lines
        return "\n".join(list(self._lines)[-count:])

    async def reveal(self) -> None:
        """Bring the log into the user's view."""
        if self._viewer is None:
            logger.warning("No log viewer attached; diagnostic log not revealed")
            return
        await self._viewer(self.tail())
