"""
Failure types raised by cluster collaborators.

These are the raw failures that domain handlers translate into error
reports. Foreign API exceptions (for example the Kubernetes client's
``ApiException``) are read through the duck-typed accessors at the bottom
of this module.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


class KubeDiagError(Exception):
    """
    Base exception for all failures raised inside the diagnostics bot.

    Carries a context mapping and the time it was raised so the failure can be
    logged without the caller re-collecting it.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        previous_error: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.context = context or {}
        self.previous_error = previous_error
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "previous_error": str(self.previous_error) if self.previous_error else None,
        }


class ConfigurationError(KubeDiagError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, context={"config_key": config_key}, **kwargs)


class ApiFailure(KubeDiagError):
    """An API call answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        reason: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.body = body
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"status_code": self.status_code, "reason": self.reason})
        return data


class ClusterConnectionError(KubeDiagError):
    """The cluster could not be reached."""

    def __init__(self, message: str, cluster: str, kubeconfig_path: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            context={"cluster": cluster, "kubeconfig_path": kubeconfig_path},
            **kwargs
        )
        self.cluster = cluster
        self.kubeconfig_path = kubeconfig_path


class KubectlNotFoundError(KubeDiagError):
    """The kubectl executable is not installed or not on PATH."""

    def __init__(self, message: str = "kubectl executable not found", **kwargs):
        super().__init__(message, **kwargs)


class InputValidationError(KubeDiagError):
    """User or configuration input was rejected."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        super().__init__(
            message,
            context={"field": field, "value": str(value) if value is not None else None},
            **kwargs
        )
        self.field = field
        self.value = value


# Accessors for API failures of any origin.


def status_code_of(failure: Any) -> Optional[int]:
    """Return the status code attached to a failure, if any."""
    if failure is None:
        return None

    response = getattr(failure, "response", None)
    for source in (response, failure):
        if source is None:
            continue
        for attr in ("status_code", "status"):
            value = getattr(source, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
    return None


def headers_of(failure: Any) -> Dict[str, str]:
    """Return response headers with lower-cased names."""
    response = getattr(failure, "response", None)
    for source in (response, failure):
        headers = getattr(source, "headers", None) if source is not None else None
        if headers:
            return {str(k).lower(): str(v) for k, v in dict(headers).items()}
    return {}


def body_of(failure: Any) -> Any:
    """Return the response body, decoding JSON text where possible."""
    response = getattr(failure, "response", None)
    body = None
    for source in (response, failure):
        if source is not None and getattr(source, "body", None) is not None:
            body = source.body
            break

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            return json.loads(body)
        except ValueError:
            return body
    return body


def body_message_of(failure: Any) -> Optional[str]:
    """Return ``body["message"]`` when the body carries one."""
    body = body_of(failure)
    if isinstance(body, Mapping) and body.get("message") is not None:
        return str(body["message"])
    return None


def message_of(failure: Any) -> str:
    """Return the plain message of a failure."""
    if isinstance(failure, KubeDiagError):
        return failure.message
    if isinstance(failure, BaseException):
        return str(failure) or failure.__class__.__name__
    message = getattr(failure, "message", None)
    return str(message) if message is not None else str(failure)
