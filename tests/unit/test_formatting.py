"""
Unit tests for prompt, issue and clipboard rendering.
"""

import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

from src.errors.formatting import (
    build_choices,
    build_issue_url,
    format_details_for_copy,
    format_display_message,
    generate_issue_template,
    issue_title,
)
from src.errors.taxonomy import (
    ApiReport,
    BuiltinAction,
    ConnectionReport,
    ErrorAction,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    UnexpectedReport,
    create_report,
)

LONG_MESSAGE = "Unhandled exception while rendering the namespace tree for cluster prod-eu-1"


def _raise(exc):
    try:
        raise exc
    except Exception as e:
        return e


def parse_copied_details(text: str) -> dict:
    """Read a "Copy Error Details" block back into its fields."""
    fields = {}
    lines = text.split("\n")
    i = 0
    while i < len(lines) and lines[i]:
        key, _, value = lines[i].partition(": ")
        fields[key] = value
        i += 1

    sections = {}
    current = None
    for line in lines[i:]:
        if line in ("Context:", "Technical Details:", "Stack Trace:"):
            current = line[:-1]
            sections[current] = []
        elif current is not None:
            sections[current].append(line)

    for name, body in sections.items():
        while body and body[-1] == "":
            body.pop()
        fields[name] = "\n".join(body)
    return fields


class TestDisplayMessage:
    def test_without_context(self):
        report = ConnectionReport(severity=ErrorSeverity.ERROR, message="Cannot connect")

        assert format_display_message(report) == "Cannot connect"

    def test_with_full_context(self):
        report = ApiReport(
            severity=ErrorSeverity.ERROR,
            message="Conflict",
            context=ErrorContext(
                cluster="prod", namespace="web", resource_type="Deployment", resource_name="api", operation="scale"
            ),
        )

        assert format_display_message(report) == (
            "Conflict (Cluster: prod, Namespace: web, Resource: Deployment/api)"
        )

    def test_context_without_displayable_parts(self):
        report = ApiReport(severity=ErrorSeverity.ERROR, message="Oops", context=ErrorContext(operation="get"))

        assert format_display_message(report) == "Oops"

    def test_partial_resource(self):
        report = ApiReport(
            severity=ErrorSeverity.ERROR, message="Denied", context=ErrorContext(resource_type="pods")
        )

        assert format_display_message(report) == "Denied (Resource: pods)"


class TestChoices:
    def test_order_for_every_kind(self):
        custom = [ErrorAction("Retry", lambda: None), ErrorAction("Open Kubeconfig", lambda: None)]
        for kind in ErrorKind:
            fields = {"severity": ErrorSeverity.ERROR, "message": "m", "actions": custom}
            if kind is ErrorKind.PERMISSION:
                fields.update(resource="pods", verb="get")
            elif kind is ErrorKind.NOT_FOUND:
                fields.update(resource_type="Pod", resource_name="web")
            elif kind is ErrorKind.TIMEOUT:
                fields.update(operation="list", duration_ms=10)
            report = create_report(kind, **fields)

            choices = build_choices(report)

            assert choices[:2] == custom
            expected = [BuiltinAction.VIEW_LOGS]
            if kind is ErrorKind.UNEXPECTED:
                expected.append(BuiltinAction.REPORT_ISSUE)
            expected.append(BuiltinAction.COPY_DETAILS)
            assert choices[2:] == expected

    def test_no_custom_actions(self):
        report = ConnectionReport(severity=ErrorSeverity.ERROR, message="m")

        assert [c.label for c in build_choices(report)] == ["View Logs", "Copy Error Details"]


class TestIssueTemplate:
    def test_sections_in_order(self):
        report = UnexpectedReport(severity=ErrorSeverity.ERROR, message="boom")

        body = generate_issue_template(report, app_version="1.2.3")

        markers = [
            "## Bug Report",
            "**Error Type:** Unexpected",
            "**Severity:** error",
            "### Description",
            "### Technical Details",
            "### Context",
            "### Environment",
            "### Stack Trace",
        ]
        positions = [body.index(marker) for marker in markers]
        assert positions == sorted(positions)
        assert "- Bot Version: 1.2.3" in body

    def test_missing_fields_render_na(self):
        report = UnexpectedReport(severity=ErrorSeverity.ERROR, message="boom")

        body = generate_issue_template(report)

        assert "### Technical Details\n```\nN/A\n```" in body
        assert "- Cluster: N/A" in body
        assert "- Namespace: N/A" in body
        assert "- Resource: N/A/N/A" in body
        assert "- Operation: N/A" in body
        assert "### Stack Trace\n```\nN/A\n```" in body

    def test_context_and_stack(self):
        report = UnexpectedReport(
            severity=ErrorSeverity.ERROR,
            message="boom",
            technical_details="KeyError('spec')",
            context=ErrorContext(
                cluster="prod", namespace="web", resource_type="Pod", resource_name="api-0", operation="describe"
            ),
            failure=_raise(KeyError("spec")),
        )

        body = generate_issue_template(report)

        assert "- Cluster: prod" in body
        assert "- Resource: Pod/api-0" in body
        assert "- Operation: describe" in body
        assert "KeyError: 'spec'" in body

    def test_title_truncates_message(self):
        report = UnexpectedReport(severity=ErrorSeverity.ERROR, message=LONG_MESSAGE)

        assert issue_title(report) == f"[Bug] Unexpected: {LONG_MESSAGE[:50]}..."

    def test_issue_url_round_trip(self):
        report = UnexpectedReport(severity=ErrorSeverity.ERROR, message=LONG_MESSAGE)

        url = build_issue_url("https://github.com/example/kubediag/issues/new", report)

        parts = urlsplit(url)
        assert parts.netloc == "github.com"
        assert " " not in url
        query = parse_qs(parts.query)
        assert query["title"] == [f"[Bug] Unexpected: {LONG_MESSAGE[:50]}..."]
        assert query["body"] == [generate_issue_template(report)]


class TestCopyDetails:
    def test_minimal_block(self):
        report = ConnectionReport(severity=ErrorSeverity.ERROR, message="Cannot connect to cluster 'prod'")
        stamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        text = format_details_for_copy(report, timestamp=stamp)

        assert text == (
            "Error Type: Connection\n"
            "Severity: error\n"
            "Message: Cannot connect to cluster 'prod'\n"
            "Timestamp: 2026-01-02T03:04:05.000+00:00"
        )

    def test_round_trip_recovers_fields(self):
        failure = _raise(RuntimeError("socket closed"))
        report = ApiReport(
            severity=ErrorSeverity.WARNING,
            message="Resource conflict",
            status_code=409,
            context=ErrorContext(cluster="prod", namespace="web", extra={"attempt": 3}),
            technical_details="object has been modified",
            failure=failure,
        )

        parsed = parse_copied_details(format_details_for_copy(report))

        assert parsed["Error Type"] == "Api"
        assert parsed["Severity"] == "warning"
        assert parsed["Message"] == "Resource conflict"
        assert parsed["Timestamp"]
        assert parsed["Status Code"] == "409"
        assert json.loads(parsed["Context"]) == {"cluster": "prod", "namespace": "web", "attempt": 3}
        assert parsed["Technical Details"] == "object has been modified"
        assert parsed["Stack Trace"] == report.stack

    def test_optional_sections_absent(self):
        report = ConnectionReport(severity=ErrorSeverity.INFO, message="m")

        parsed = parse_copied_details(format_details_for_copy(report))

        for key in ("Status Code", "Context", "Technical Details", "Stack Trace"):
            assert key not in parsed
