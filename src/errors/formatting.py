"""
Text rendering for error reports: prompt message, action list, issue
template and the plain-text block offered for copying.
"""

import json
import platform
import sys
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import quote

from .. import __version__
from .taxonomy import BuiltinAction, ErrorKind, ErrorReport, PromptChoice

ISSUE_TITLE_MESSAGE_CHARS = 50

# Matches JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def format_display_message(report: ErrorReport) -> str:
    """Report message with a parenthesized context fragment."""
    message = report.message
    context = report.context
    if not context:
        return message

    parts = []
    if context.cluster:
        parts.append(f"Cluster: {context.cluster}")
    if context.namespace:
        parts.append(f"Namespace: {context.namespace}")
    if context.resource_type and context.resource_name:
        parts.append(f"Resource: {context.resource_type}/{context.resource_name}")
    elif context.resource_type:
        parts.append(f"Resource: {context.resource_type}")
    elif context.resource_name:
        parts.append(f"Resource: {context.resource_name}")

    if parts:
        message += f" ({', '.join(parts)})"
    return message


def build_choices(report: ErrorReport) -> List[PromptChoice]:
    """
    Ordered prompt choices: custom actions, View Logs, Report Issue (only for
    unexpected errors), Copy Error Details.
    """
    choices: List[PromptChoice] = list(report.actions)
    choices.append(BuiltinAction.VIEW_LOGS)
    if report.kind is ErrorKind.UNEXPECTED:
        choices.append(BuiltinAction.REPORT_ISSUE)
    choices.append(BuiltinAction.COPY_DETAILS)
    return choices


def _or_na(value: Optional[str]) -> str:
    return str(value) if value else "N/A"


def generate_issue_template(report: ErrorReport, app_version: str = __version__) -> str:
    """Markdown bug report body."""
    context = report.context
    cluster = context.cluster if context else None
    namespace = context.namespace if context else None
    resource_type = context.resource_type if context else None
    resource_name = context.resource_name if context else None
    operation = context.operation if context else None

    lines = [
        "## Bug Report",
        "",
        f"**Error Type:** {report.kind.value}",
        f"**Severity:** {report.severity.value}",
        "",
        "### Description",
        report.message,
        "",
        "### Technical Details",
        "```",
        _or_na(report.technical_details),
        "```",
        "",
        "### Context",
        f"- Cluster: {_or_na(cluster)}",
        f"- Namespace: {_or_na(namespace)}",
        f"- Resource: {_or_na(resource_type)}/{_or_na(resource_name)}",
        f"- Operation: {_or_na(operation)}",
        "",
        "### Environment",
        f"- Bot Version: {app_version}",
        f"- Python Version: {platform.python_version()}",
        f"- Platform: {sys.platform}",
        "",
        "### Stack Trace",
        "```",
        _or_na(report.stack),
        "```",
    ]
    return "\n".join(lines)


def issue_title(report: ErrorReport) -> str:
    return f"[Bug] {report.kind.value}: {report.message[:ISSUE_TITLE_MESSAGE_CHARS]}..."


def build_issue_url(tracker_url: str, report: ErrorReport, app_version: str = __version__) -> str:
    """Issue tracker navigation target with percent-encoded title and body."""
    title = quote(issue_title(report), safe=_URI_COMPONENT_SAFE)
    body = quote(generate_issue_template(report, app_version), safe=_URI_COMPONENT_SAFE)
    separator = "&" if "?" in tracker_url else "?"
    return f"{tracker_url}{separator}title={title}&body={body}"


def format_details_for_copy(report: ErrorReport, timestamp: Optional[datetime] = None) -> str:
    """Plain-text block for the "Copy Error Details" action."""
    timestamp = timestamp or datetime.now(timezone.utc)
    lines = [
        f"Error Type: {report.kind.value}",
        f"Severity: {report.severity.value}",
        f"Message: {report.message}",
        f"Timestamp: {timestamp.isoformat(timespec='milliseconds')}",
    ]

    if report.status_code is not None:
        lines.append(f"Status Code: {report.status_code}")

    if report.context:
        lines.extend(["", "Context:", json.dumps(report.context.to_dict(), indent=2, default=str)])

    if report.technical_details:
        lines.extend(["", "Technical Details:", report.technical_details])

    stack = report.stack
    if stack:
        lines.extend(["", "Stack Trace:", stack])

    return "\n".join(lines)
