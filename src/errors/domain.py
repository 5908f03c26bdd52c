"""
Domain error handlers.

Each handler turns a raw failure plus what the caller knows about it
(cluster, resource, verb, elapsed time...) into a report of the right kind
and hands it to the central ``ErrorHandler``. Remediation actions that need
the outside world go through the presenter; retry and refresh callbacks are
always supplied by the caller.
"""

import asyncio
import json
import math
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

import structlog

from .exceptions import (
    ApiFailure,
    ClusterConnectionError,
    InputValidationError,
    KubectlNotFoundError,
    body_message_of,
    body_of,
    headers_of,
    message_of,
    status_code_of,
)
from .handlers import ErrorHandler
from .taxonomy import (
    CONTEXT_KEYS,
    ApiReport,
    ConnectionReport,
    ErrorAction,
    ErrorContext,
    ErrorSeverity,
    NotFoundReport,
    PermissionReport,
    TimeoutReport,
    UnexpectedReport,
    ValidationReport,
)

if TYPE_CHECKING:
    from src.config.settings import Settings
    from src.ui.presenter import Presenter

logger = structlog.get_logger(__name__)

Callback = Callable[[], Awaitable[None]]

DEFAULT_RETRY_AFTER = "60"
TIMEOUT_SETTING_KEY = "operation_timeout_ms"


def _as_exception(failure: Any) -> Optional[BaseException]:
    return failure if isinstance(failure, BaseException) else None


def _optional(callback: Optional[Callback], name: str) -> Callback:
    async def run() -> None:
        if callback is None:
            logger.debug("No callback supplied for action", action=name)
            return
        await callback()

    return run


def format_duration(ms: float) -> str:
    """Human-readable duration: ``500ms``, ``5 seconds``, ``2 minutes``.

    Halves round up, and the unit is chosen after rounding so 999.6ms
    reads as ``1 seconds`` rather than ``1000ms``.
    """
    millis = _round_half_up(ms)
    if millis < 1000:
        return f"{millis}ms"
    seconds = _round_half_up(ms / 1000)
    if seconds < 60:
        return f"{seconds} seconds"
    return f"{_round_half_up(ms / 60000)} minutes"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class _DomainHandler:
    def __init__(self, error_handler: ErrorHandler, presenter: "Presenter", settings: "Settings"):
        self.error_handler = error_handler
        self.presenter = presenter
        self.settings = settings

    def _open_url_action(self, label: str, url: str) -> ErrorAction:
        async def run() -> None:
            await self.presenter.open_url(url)

        return ErrorAction(label, run)

    def _open_kubeconfig_action(self, path: Optional[str] = None) -> ErrorAction:
        kubeconfig = path or self.settings.kubeconfig_path

        async def run() -> None:
            await self.presenter.open_file(kubeconfig)

        return ErrorAction("Open Kubeconfig", run)


class ConnectionErrorHandler(_DomainHandler):
    """Cluster connectivity failures and a missing kubectl binary."""

    async def handle_connection_error(
        self,
        failure: Any,
        cluster: str,
        kubeconfig_path: Optional[str] = None,
        on_retry: Optional[Callback] = None,
    ) -> None:
        kubeconfig_path = kubeconfig_path or self.settings.kubeconfig_path
        report = ConnectionReport(
            severity=ErrorSeverity.ERROR,
            message=f"Cannot connect to cluster '{cluster}'",
            technical_details=message_of(failure),
            context=ErrorContext(cluster=cluster, operation="connect"),
            failure=_as_exception(failure),
            suggestions=(
                "Check your network connection",
                f"Verify cluster endpoint in kubeconfig ({kubeconfig_path})",
                "Ensure kubectl is installed and accessible",
            ),
            actions=(
                ErrorAction("Retry", _optional(on_retry, "Retry")),
                self._open_kubeconfig_action(kubeconfig_path),
                self._open_url_action("Troubleshooting Guide", self.settings.troubleshooting_url),
            ),
            documentation_url=self.settings.troubleshooting_url,
        )
        await self.error_handler.handle_error(report)

    async def handle_kubectl_not_found(self) -> None:
        report = ConnectionReport(
            severity=ErrorSeverity.ERROR,
            message="kubectl executable not found",
            suggestions=(
                "Install kubectl and add it to your system PATH",
                "Restart the bot after installing kubectl",
            ),
            actions=(
                self._open_url_action("Installation Guide", self.settings.kubectl_install_url),
            ),
            documentation_url=self.settings.kubectl_install_url,
        )
        await self.error_handler.handle_error(report)


class PermissionErrorHandler(_DomainHandler):
    """RBAC denials."""

    async def handle_permission_denied(
        self,
        failure: Any,
        resource: str,
        verb: str,
        namespace: Optional[str] = None,
    ) -> None:
        scope = f" in namespace '{namespace}'" if namespace else " (cluster-scoped)"
        namespace_flag = f" -n {namespace}" if namespace else ""
        required_scope = f" in namespace '{namespace}'" if namespace else ""

        report = PermissionReport(
            severity=ErrorSeverity.ERROR,
            message=f"Permission denied: Cannot {verb} {resource}{scope}",
            technical_details=body_message_of(failure) or message_of(failure),
            context=ErrorContext(resource_type=resource, operation=verb, namespace=namespace),
            failure=_as_exception(failure),
            resource=resource,
            verb=verb,
            namespace=namespace,
            suggestions=(
                f"Required permission: {resource}.{verb}{required_scope}",
                "Check your ServiceAccount permissions",
                "Contact your cluster administrator for access",
                f"Run: kubectl auth can-i {verb} {resource}{namespace_flag}",
            ),
            actions=(
                self._open_url_action("RBAC Documentation", self.settings.rbac_docs_url),
            ),
            documentation_url=self.settings.rbac_docs_url,
        )
        await self.error_handler.handle_error(report)


class NotFoundErrorHandler(_DomainHandler):
    """Resources that vanished or never existed."""

    async def handle_resource_not_found(
        self,
        resource_type: str,
        resource_name: str,
        namespace: Optional[str] = None,
        on_refresh: Optional[Callback] = None,
    ) -> None:
        scope = f" in namespace '{namespace}'" if namespace else ""
        report = NotFoundReport(
            severity=ErrorSeverity.WARNING,
            message=f"Resource {resource_type}/{resource_name} not found{scope}",
            context=ErrorContext(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            ),
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
            suggestions=(
                "The resource may have been deleted by another user or process",
                "Try refreshing the resource list",
            ),
            actions=(ErrorAction("Refresh", _optional(on_refresh, "Refresh")),),
        )
        await self.error_handler.handle_error(report)


class TimeoutErrorHandler(_DomainHandler):
    async def handle_timeout(
        self,
        operation: str,
        duration_ms: float,
        on_retry: Optional[Callback] = None,
    ) -> None:
        async def open_timeout_setting() -> None:
            await self.presenter.open_settings(TIMEOUT_SETTING_KEY)

        report = TimeoutReport(
            severity=ErrorSeverity.WARNING,
            message=f"Operation timed out after {format_duration(duration_ms)}",
            context=ErrorContext(operation=operation, extra={"timeout": duration_ms}),
            operation=operation,
            duration_ms=int(duration_ms),
            suggestions=(
                "The cluster may be slow to respond",
                "Check your network connection",
                "Consider increasing the timeout in settings",
            ),
            actions=(
                ErrorAction("Retry", _optional(on_retry, "Retry")),
                ErrorAction("Increase Timeout", open_timeout_setting),
            ),
        )
        await self.error_handler.handle_error(report)


class ApiErrorHandler(_DomainHandler):
    """
    Routes API failures by status code.

    401, 409, 429 and 5xx get dedicated reports. Everything else, 403 and
    404 included, becomes a generic API report; callers that know the
    resource should use the permission / not-found handlers directly.
    """

    async def handle_api_error(
        self,
        failure: Any,
        operation: str,
        context: Optional[Mapping[str, Any]] = None,
        on_retry: Optional[Callback] = None,
        on_refresh: Optional[Callback] = None,
    ) -> None:
        status_code = status_code_of(failure)
        logger.debug("Routing API failure", status_code=status_code, operation=operation)

        if status_code == 401:
            await self._handle_unauthorized(failure)
        elif status_code == 409:
            await self._handle_conflict(failure, context, on_refresh)
        elif status_code == 429:
            await self._handle_rate_limit(failure)
        elif status_code is not None and status_code >= 500:
            await self._handle_server_error(failure, operation, status_code, on_retry)
        else:
            await self._handle_generic(failure, operation, status_code)

    async def _handle_unauthorized(self, failure: Any) -> None:
        report = ApiReport(
            severity=ErrorSeverity.ERROR,
            message="Authentication failed: Invalid or expired credentials",
            technical_details=body_message_of(failure),
            status_code=401,
            failure=_as_exception(failure),
            suggestions=(
                "Check your kubeconfig authentication settings",
                "You may need to refresh your cluster credentials",
                "Verify your authentication token is valid",
            ),
            actions=(self._open_kubeconfig_action(),),
        )
        await self.error_handler.handle_error(report)

    async def _handle_conflict(
        self,
        failure: Any,
        context: Optional[Mapping[str, Any]],
        on_refresh: Optional[Callback],
    ) -> None:
        report = ApiReport(
            severity=ErrorSeverity.WARNING,
            message="Resource conflict: Resource already exists or has been modified",
            technical_details=body_message_of(failure),
            status_code=409,
            context=_context_from_mapping(context),
            failure=_as_exception(failure),
            suggestions=(
                "The resource may have been updated by another user",
                "Try refreshing and retrying the operation",
            ),
            actions=(ErrorAction("Refresh", _optional(on_refresh, "Refresh")),),
        )
        await self.error_handler.handle_error(report)

    async def _handle_rate_limit(self, failure: Any) -> None:
        retry_after = headers_of(failure).get("retry-after") or DEFAULT_RETRY_AFTER
        report = ApiReport(
            severity=ErrorSeverity.WARNING,
            message=f"API rate limit exceeded: retry after {retry_after} seconds",
            technical_details=f"Retry after {retry_after} seconds",
            status_code=429,
            failure=_as_exception(failure),
            suggestions=(
                "Too many requests sent to the cluster",
                f"Wait {retry_after} seconds before retrying",
            ),
        )
        await self.error_handler.handle_error(report)

    async def _handle_server_error(
        self,
        failure: Any,
        operation: str,
        status_code: int,
        on_retry: Optional[Callback],
    ) -> None:
        report = ApiReport(
            severity=ErrorSeverity.ERROR,
            message="Cluster internal error: The Kubernetes API encountered an error",
            technical_details=body_message_of(failure),
            status_code=status_code,
            context=ErrorContext(operation=operation),
            failure=_as_exception(failure),
            suggestions=(
                "This may be a temporary cluster issue",
                "Check cluster health or contact administrator",
            ),
            actions=(ErrorAction("Retry", _optional(on_retry, "Retry")),),
        )
        await self.error_handler.handle_error(report)

    async def _handle_generic(self, failure: Any, operation: str, status_code: Optional[int]) -> None:
        body = body_of(failure)
        if body is not None:
            technical_details = json.dumps(body, indent=2, default=str) if not isinstance(body, str) else body
        else:
            technical_details = str(failure)

        status_text = status_code if status_code is not None else "unknown"
        report = ApiReport(
            severity=ErrorSeverity.ERROR,
            message=f"API Error ({status_text}): {message_of(failure)}",
            technical_details=technical_details,
            status_code=status_code,
            context=ErrorContext(operation=operation),
            failure=_as_exception(failure),
        )
        await self.error_handler.handle_error(report)


class ValidationErrorHandler(_DomainHandler):
    async def handle_invalid_input(
        self,
        field: Optional[str],
        value: Any,
        reason: str,
        failure: Any = None,
    ) -> None:
        subject = f"'{field}'" if field else "input"
        report = ValidationReport(
            severity=ErrorSeverity.WARNING,
            message=f"Invalid {subject}: {reason}",
            technical_details=f"Rejected value: {value!r}" if value is not None else None,
            context=ErrorContext(extra={"field": field} if field else {}),
            failure=_as_exception(failure),
            field=field,
            suggestions=("Check the value and try again",),
        )
        await self.error_handler.handle_error(report)


class UnexpectedErrorHandler(_DomainHandler):
    """Programming defects; these are the reports that offer "Report Issue"."""

    async def handle_unexpected(
        self,
        failure: Any,
        operation: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        fields = dict(context or {})
        if operation:
            fields["operation"] = operation
        report = UnexpectedReport(
            severity=ErrorSeverity.ERROR,
            message=f"Unexpected error: {message_of(failure)}",
            technical_details=repr(failure),
            context=_context_from_mapping(fields),
            failure=_as_exception(failure),
        )
        await self.error_handler.handle_error(report)


def _context_from_mapping(data: Optional[Mapping[str, Any]]) -> Optional[ErrorContext]:
    if not data:
        return None
    known = {k: data[k] for k in CONTEXT_KEYS if data.get(k) is not None}
    extra = {k: v for k, v in data.items() if k not in CONTEXT_KEYS}
    return ErrorContext(**known, extra=extra)


class DomainErrorHandlers:
    """All domain handlers, plus dispatch of raised exceptions by type."""

    def __init__(self, error_handler: ErrorHandler, presenter: "Presenter", settings: "Settings"):
        args = (error_handler, presenter, settings)
        self.error_handler = error_handler
        self.settings = settings
        self.connection = ConnectionErrorHandler(*args)
        self.permission = PermissionErrorHandler(*args)
        self.not_found = NotFoundErrorHandler(*args)
        self.timeout = TimeoutErrorHandler(*args)
        self.api = ApiErrorHandler(*args)
        self.validation = ValidationErrorHandler(*args)
        self.unexpected = UnexpectedErrorHandler(*args)

    async def handle_failure(
        self,
        failure: BaseException,
        operation: str,
        on_retry: Optional[Callback] = None,
        on_refresh: Optional[Callback] = None,
        **context: Any,
    ) -> None:
        """
        Report a raised exception using its type to pick the domain handler.

        With ``resource`` and ``verb`` in ``context`` a 403 goes to the
        permission handler; with ``resource_type`` and ``resource_name`` a 404
        goes to the not-found handler. ``on_retry`` and ``on_refresh`` back the
        Retry and Refresh actions of whichever report is produced.
        """
        logger.debug("Dispatching failure", error_type=type(failure).__name__, operation=operation)

        if isinstance(failure, ApiFailure) or status_code_of(failure) is not None:
            status_code = status_code_of(failure)
            if status_code == 403 and context.get("resource") and context.get("verb"):
                await self.permission.handle_permission_denied(
                    failure, context["resource"], context["verb"], context.get("namespace")
                )
            elif status_code == 404 and context.get("resource_type") and context.get("resource_name"):
                await self.not_found.handle_resource_not_found(
                    context["resource_type"],
                    context["resource_name"],
                    context.get("namespace"),
                    on_refresh=on_refresh,
                )
            else:
                await self.api.handle_api_error(
                    failure, operation, context or None, on_retry=on_retry, on_refresh=on_refresh
                )
        elif isinstance(failure, KubectlNotFoundError):
            await self.connection.handle_kubectl_not_found()
        elif isinstance(failure, ClusterConnectionError):
            await self.connection.handle_connection_error(
                failure, failure.cluster, failure.kubeconfig_path, on_retry=on_retry
            )
        elif isinstance(failure, (TimeoutError, asyncio.TimeoutError)):
            duration_ms = context.get("duration_ms", self.settings.operation_timeout_ms)
            await self.timeout.handle_timeout(operation, duration_ms, on_retry=on_retry)
        elif isinstance(failure, ConnectionError):
            await self.connection.handle_connection_error(
                failure, context.get("cluster", "unknown"), on_retry=on_retry
            )
        elif isinstance(failure, InputValidationError):
            await self.validation.handle_invalid_input(
                failure.field, failure.value, failure.message, failure=failure
            )
        else:
            await self.unexpected.handle_unexpected(failure, operation, context)
