"""
Exception hierarchy for login automation and transition verification.

Every error carries:
- error_code: stable identifier (e.g. LOGIN_VERIFY_001) for logs and reports
- context: free-form hint about where the failure happened
- timestamp: UTC time of construction

Domain fields (page_url, field_type, error_messages, ...) are exposed through
details() so the failure classifier can copy them verbatim.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


class WebConnectError(Exception):
    """Base error for the webconnect engine."""

    default_code = "WEBCONNECT_001"

    def __init__(self, message: str, *, context: str = "", error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.error_code = error_code or self.default_code
        self.timestamp = datetime.now(timezone.utc)

    def details(self) -> dict[str, Any]:
        return {}

    def __str__(self) -> str:
        if self.context:
            return f"[{self.error_code}] {self.message} ({self.context})"
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.context:
            result["context"] = self.context
        result.update(self.details())
        return result


# ─────────────────────────────────────────────────────────────────────────────
# Login
# ─────────────────────────────────────────────────────────────────────────────


class LoginError(WebConnectError):
    default_code = "LOGIN_001"


class LoginFormNotFoundError(LoginError):
    default_code = "LOGIN_FORM_001"

    def __init__(self, message: str, *, page_url: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.page_url = page_url

    def details(self) -> dict[str, Any]:
        return {"page_url": self.page_url}


class CredentialEntryError(LoginError):
    default_code = "CREDENTIAL_ENTRY_001"

    def __init__(self, message: str, *, field_type: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field_type = field_type

    def details(self) -> dict[str, Any]:
        return {"field_type": self.field_type}


class LoginVerificationError(LoginError):
    """Login outcome could not be determined (page moved but never settled, etc.)."""

    default_code = "LOGIN_VERIFY_001"

    def __init__(self, message: str, *, error_messages: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.error_messages = list(error_messages or [])

    def details(self) -> dict[str, Any]:
        return {"error_messages": list(self.error_messages)}


class InvalidCredentialsError(LoginError):
    default_code = "INVALID_CREDS_001"

    def __init__(self, message: str, *, error_messages: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.error_messages = list(error_messages or [])

    def details(self) -> dict[str, Any]:
        return {"error_messages": list(self.error_messages)}


# ─────────────────────────────────────────────────────────────────────────────
# Browser
# ─────────────────────────────────────────────────────────────────────────────


class BrowserError(WebConnectError):
    default_code = "BROWSER_001"


class BrowserInitializationError(BrowserError):
    default_code = "BROWSER_INIT_001"


class SessionUnavailableError(BrowserError):
    """The browser session went away (tab closed, CDP endpoint gone)."""

    default_code = "BROWSER_SESSION_001"

    def __init__(self, message: str, *, endpoint: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.endpoint = endpoint

    def details(self) -> dict[str, Any]:
        return {"endpoint": self.endpoint}


class BrowserNavigationError(BrowserError):
    default_code = "BROWSER_NAV_001"

    def __init__(self, message: str, *, target_url: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.target_url = target_url

    def details(self) -> dict[str, Any]:
        return {"target_url": self.target_url}


class BrowserTimeoutError(BrowserError):
    default_code = "BROWSER_TIMEOUT_001"

    def __init__(self, message: str, *, operation: str = "", timeout_ms: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.operation = operation
        self.timeout_ms = int(timeout_ms)

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation, "timeout_ms": self.timeout_ms}


# ─────────────────────────────────────────────────────────────────────────────
# Network
# ─────────────────────────────────────────────────────────────────────────────


class NetworkError(WebConnectError):
    default_code = "NETWORK_001"


class ConnectionFailedError(NetworkError):
    default_code = "CONNECTION_FAILED_001"

    def __init__(self, message: str, *, target_url: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.target_url = target_url

    def details(self) -> dict[str, Any]:
        return {"target_url": self.target_url}


class CertificateError(NetworkError):
    default_code = "CERTIFICATE_001"

    def __init__(
        self,
        message: str,
        *,
        target_url: str = "",
        subject: str = "",
        validation_errors: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.target_url = target_url
        self.subject = subject
        self.validation_errors = list(validation_errors or [])

    def details(self) -> dict[str, Any]:
        return {
            "target_url": self.target_url,
            "subject": self.subject,
            "validation_errors": list(self.validation_errors),
        }


class RequestTimeoutError(NetworkError):
    default_code = "REQUEST_TIMEOUT_001"

    def __init__(self, message: str, *, request_url: str = "", timeout_ms: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.request_url = request_url
        self.timeout_ms = int(timeout_ms)

    def details(self) -> dict[str, Any]:
        return {"request_url": self.request_url, "timeout_ms": self.timeout_ms}


# ─────────────────────────────────────────────────────────────────────────────
# System
# ─────────────────────────────────────────────────────────────────────────────


class ConfigurationError(WebConnectError):
    """Invalid configuration. Raised eagerly, before any browser work starts."""

    default_code = "CONFIG_001"

    def __init__(self, message: str, *, parameter_names: tuple[str, ...] = (), **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.parameter_names = tuple(parameter_names)

    def details(self) -> dict[str, Any]:
        return {"parameter_names": list(self.parameter_names)}


class OperationCancelledError(WebConnectError):
    default_code = "OPERATION_CANCELED_001"

    def __init__(self, message: str, *, operation: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.operation = operation

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation}


__all__ = [
    "BrowserError",
    "BrowserInitializationError",
    "BrowserNavigationError",
    "BrowserTimeoutError",
    "CertificateError",
    "ConfigurationError",
    "ConnectionFailedError",
    "CredentialEntryError",
    "InvalidCredentialsError",
    "LoginError",
    "LoginFormNotFoundError",
    "LoginVerificationError",
    "NetworkError",
    "OperationCancelledError",
    "RequestTimeoutError",
    "SessionUnavailableError",
    "WebConnectError",
]
