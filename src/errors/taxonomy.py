"""
Error taxonomy shared by every subsystem that reports failures.

An error report is an immutable record with one variant per error kind.
Each variant carries only the fields meaningful to it; ``kind`` is fixed by
the variant class and never inferred from message text.
"""

import inspect
import traceback
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, ClassVar, Dict, Mapping, Optional, Tuple, Type, Union


class ErrorKind(str, Enum):
    """Closed classification of a failure."""

    CONNECTION = "Connection"
    PERMISSION = "Permission"
    NOT_FOUND = "NotFound"
    API = "Api"
    TIMEOUT = "Timeout"
    VALIDATION = "Validation"
    UNEXPECTED = "Unexpected"


class ErrorSeverity(str, Enum):
    """Urgency tier governing how a prompt is presented."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


CONTEXT_KEYS = ("cluster", "namespace", "resource_type", "resource_name", "operation")


@dataclass(frozen=True)
class ErrorContext:
    """Where a failure happened."""

    cluster: Optional[str] = None
    namespace: Optional[str] = None
    resource_type: Optional[str] = None
    resource_name: Optional[str] = None
    operation: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Recognized keys never live in extra; an explicit field wins.
        extra = dict(self.extra)
        for key in CONTEXT_KEYS:
            if key in extra:
                value = extra.pop(key)
                if getattr(self, key) is None:
                    object.__setattr__(self, key, value)
        object.__setattr__(self, "extra", MappingProxyType(extra))

    def to_dict(self) -> Dict[str, Any]:
        """Return the keys that are set, recognized keys first."""
        data: Dict[str, Any] = {}
        for key in CONTEXT_KEYS:
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data.update(self.extra)
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.to_dict().get(key, default)

    def __bool__(self) -> bool:
        return bool(self.to_dict())


ActionCallback = Callable[[], Union[Awaitable[None], None]]


@dataclass(frozen=True, eq=False)
class ErrorAction:
    """
    A remediation step supplied by the reporting collaborator.

    Actions compare by identity, so two actions with the same label are
    still distinct choices.
    """

    label: str
    run: ActionCallback

    async def execute(self) -> None:
        result = self.run()
        if inspect.isawaitable(result):
            await result


class BuiltinAction(Enum):
    """Actions offered on every prompt by the error handler itself."""

    VIEW_LOGS = "View Logs"
    REPORT_ISSUE = "Report Issue"
    COPY_DETAILS = "Copy Error Details"

    @property
    def label(self) -> str:
        return self.value


PromptChoice = Union[ErrorAction, BuiltinAction]


def format_stack(failure: Optional[BaseException]) -> Optional[str]:
    """Render the traceback of a failure, or None when there is no failure."""
    if failure is None:
        return None
    lines = traceback.format_exception(type(failure), failure, failure.__traceback__)
    return "".join(lines).rstrip()


@dataclass(frozen=True, kw_only=True)
class ErrorReport:
    """Base of all report variants. Instantiate a variant, not this class."""

    kind: ClassVar[ErrorKind]

    severity: ErrorSeverity
    message: str
    technical_details: Optional[str] = None
    context: Optional[ErrorContext] = None
    failure: Optional[BaseException] = None
    suggestions: Tuple[str, ...] = ()
    actions: Tuple[ErrorAction, ...] = ()
    documentation_url: Optional[str] = None

    def __post_init__(self):
        if type(self) is ErrorReport:
            raise TypeError("ErrorReport is abstract; use a kind-specific report")
        object.__setattr__(self, "severity", ErrorSeverity(self.severity))
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "actions", tuple(self.actions))

    @property
    def status_code(self) -> Optional[int]:
        return None

    @property
    def stack(self) -> Optional[str]:
        return format_stack(self.failure)

    @property
    def throttle_key(self) -> str:
        return f"{self.kind.value}:{self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for structured logging."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context.to_dict() if self.context else None,
            "technical_details": self.technical_details,
            "actions": [action.label for action in self.actions],
        }


@dataclass(frozen=True, kw_only=True)
class ConnectionReport(ErrorReport):
    kind: ClassVar[ErrorKind] = ErrorKind.CONNECTION


@dataclass(frozen=True, kw_only=True)
class PermissionReport(ErrorReport):
    """Access denied for a verb on a resource."""

    kind: ClassVar[ErrorKind] = ErrorKind.PERMISSION

    resource: str
    verb: str
    namespace: Optional[str] = None

    @property
    def status_code(self) -> Optional[int]:
        return 403


@dataclass(frozen=True, kw_only=True)
class NotFoundReport(ErrorReport):
    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND

    resource_type: str
    resource_name: str
    namespace: Optional[str] = None

    @property
    def status_code(self) -> Optional[int]:
        return 404


@dataclass(frozen=True, kw_only=True)
class ApiReport(ErrorReport):
    kind: ClassVar[ErrorKind] = ErrorKind.API

    status_code: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class TimeoutReport(ErrorReport):
    kind: ClassVar[ErrorKind] = ErrorKind.TIMEOUT

    operation: str
    duration_ms: int


@dataclass(frozen=True, kw_only=True)
class ValidationReport(ErrorReport):
    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION

    field: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class UnexpectedReport(ErrorReport):
    """A programming defect; the only kind that offers issue reporting."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNEXPECTED


REPORT_TYPES: Dict[ErrorKind, Type[ErrorReport]] = {
    report_type.kind: report_type
    for report_type in (
        ConnectionReport,
        PermissionReport,
        NotFoundReport,
        ApiReport,
        TimeoutReport,
        ValidationReport,
        UnexpectedReport,
    )
}


def create_report(kind: ErrorKind, **fields: Any) -> ErrorReport:
    """Factory function to create a report variant by kind."""
    return REPORT_TYPES[ErrorKind(kind)](**fields)
