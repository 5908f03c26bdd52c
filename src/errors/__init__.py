"""
Structured error classification and diagnostics.

Collaborators translate a failure into a kind-specific report through the
domain handlers; the central handler logs it, counts it, throttles repeats
and prompts the user with remediation actions.
"""

from .exceptions import (
    KubeDiagError,
    ConfigurationError,
    ApiFailure,
    ClusterConnectionError,
    KubectlNotFoundError,
    InputValidationError,
)

from .taxonomy import (
    ErrorKind,
    ErrorSeverity,
    ErrorContext,
    ErrorAction,
    BuiltinAction,
    ErrorReport,
    ConnectionReport,
    PermissionReport,
    NotFoundReport,
    ApiReport,
    TimeoutReport,
    ValidationReport,
    UnexpectedReport,
    create_report,
)

from .sink import DiagnosticSink
from .metrics import ErrorMetrics
from .throttle import ThrottleWindow
from .handlers import ErrorHandler

from .domain import (
    DomainErrorHandlers,
    ConnectionErrorHandler,
    PermissionErrorHandler,
    NotFoundErrorHandler,
    TimeoutErrorHandler,
    ApiErrorHandler,
    ValidationErrorHandler,
    UnexpectedErrorHandler,
    format_duration,
)

from .decorators import report_failures

__all__ = [
    # Exceptions
    "KubeDiagError",
    "ConfigurationError",
    "ApiFailure",
    "ClusterConnectionError",
    "KubectlNotFoundError",
    "InputValidationError",

    # Taxonomy
    "ErrorKind",
    "ErrorSeverity",
    "ErrorContext",
    "ErrorAction",
    "BuiltinAction",
    "ErrorReport",
    "ConnectionReport",
    "PermissionReport",
    "NotFoundReport",
    "ApiReport",
    "TimeoutReport",
    "ValidationReport",
    "UnexpectedReport",
    "create_report",

    # Services
    "DiagnosticSink",
    "ErrorMetrics",
    "ThrottleWindow",
    "ErrorHandler",

    # Domain handlers
    "DomainErrorHandlers",
    "ConnectionErrorHandler",
    "PermissionErrorHandler",
    "NotFoundErrorHandler",
    "TimeoutErrorHandler",
    "ApiErrorHandler",
    "ValidationErrorHandler",
    "UnexpectedErrorHandler",
    "format_duration",

    # Decorators
    "report_failures",
]
