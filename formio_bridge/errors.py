"""Error types for the Form.io bridge.

Every failure that reaches a screen controller is one of the exceptions
defined here. The API client normalizes transport failures into this
taxonomy, so controllers never inspect httpx exceptions or raw responses:

- AuthError: the service answered 401 (the stored token has been cleared)
- RequestError: any other non-2xx answer, carrying the service's error body
- NetworkError: no response was obtained (connection failure or timeout)
- ParseError: an inbound bridge message could not be decoded

All of them share the FormioError shape ``{name, message, details}`` used by
the service itself, so they can be surfaced to the renderer unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from formio_bridge.types import ErrorLevel


@dataclass(frozen=True)
class ErrorDetail:
    """One entry of the ``details`` array in a service error body.

    Attributes:
        message: Human-readable description of the problem
        path: Path of the offending component key(s), e.g. ["email"]
        level: Severity reported by the service
        context: Optional free-form context (validator name, limits, ...)

    Examples:
        >>> detail = ErrorDetail.from_dict({"message": "Email is required", "path": ["email"]})
        >>> detail.level
        <ErrorLevel.ERROR: 'error'>
    """
    message: str
    path: List[str] = field(default_factory=list)
    level: ErrorLevel = ErrorLevel.ERROR
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "message": self.message,
            "path": list(self.path),
            "level": self.level.value if isinstance(self.level, ErrorLevel) else self.level,
        }
        if self.context is not None:
            result["context"] = self.context
        return result

    @classmethod
    def from_dict(cls, data: Any) -> "ErrorDetail":
        """Create ErrorDetail from a service detail entry.

        The renderer reports validation errors with slightly different
        shapes (plain strings, numeric path segments, unknown levels), so
        every field is coerced rather than trusted.
        """
        if not isinstance(data, dict):
            return cls(message=str(data))
        path = data.get("path") or []
        if not isinstance(path, list):
            path = [path]
        try:
            level = ErrorLevel(data.get("level", ErrorLevel.ERROR.value))
        except ValueError:
            level = ErrorLevel.ERROR
        return cls(
            message=str(data.get("message", "")),
            path=[str(p) for p in path],
            level=level,
            context=data.get("context"),
        )


class FormioError(Exception):
    """Base class for every error surfaced by the bridge.

    Attributes:
        name: Error name as reported by the service (e.g. "ValidationError")
        message: Human-readable message
        details: Field-level details, possibly empty
    """

    default_name = "FormioError"

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        details: Optional[List[ErrorDetail]] = None,
    ):
        self.name = name or self.default_name
        self.message = message
        self.details = list(details or [])
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ``{name, message, details}`` shape."""
        return {
            "name": self.name,
            "message": self.message,
            "details": [d.to_dict() for d in self.details],
        }

    @classmethod
    def from_body(cls, body: Any, fallback: str = "An error occurred") -> "FormioError":
        """Build an error from a JSON body shaped like the service's errors."""
        if not isinstance(body, dict):
            return cls(message=str(body) if body else fallback)
        return cls(
            message=str(body.get("message") or fallback),
            name=body.get("name"),
            details=[ErrorDetail.from_dict(d) for d in body.get("details") or []],
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, message={self.message!r})"


class AuthError(FormioError):
    """Raised on 401 responses and failed logins."""

    default_name = "AuthError"

    def __init__(
        self,
        message: str = "Unauthorized",
        name: Optional[str] = None,
        details: Optional[List[ErrorDetail]] = None,
        status: Optional[int] = 401,
    ):
        self.status = status
        super().__init__(message, name=name, details=details)


class RequestError(FormioError):
    """Raised on any non-2xx response other than 401.

    Attributes:
        status: HTTP status code of the response
    """

    default_name = "RequestError"

    def __init__(
        self,
        status: int,
        message: str,
        name: Optional[str] = None,
        details: Optional[List[ErrorDetail]] = None,
    ):
        self.status = status
        super().__init__(message, name=name, details=details)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["status"] = self.status
        return result


class NetworkError(FormioError):
    """Raised when no HTTP response was obtained.

    Attributes:
        timeout: True when the per-request deadline expired
    """

    default_name = "NetworkError"

    def __init__(self, message: str = "Network error occurred", timeout: bool = False):
        self.timeout = timeout
        super().__init__(message)


class ParseError(FormioError):
    """Raised when an inbound bridge message cannot be decoded.

    Attributes:
        raw: The offending message content
    """

    default_name = "ParseError"

    def __init__(self, message: str, raw: Any = None):
        self.raw = raw
        super().__init__(message)


__all__ = [
    "ErrorDetail",
    "FormioError",
    "AuthError",
    "RequestError",
    "NetworkError",
    "ParseError",
]
