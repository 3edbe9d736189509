"""
Failure classification.

classify() is the single boundary where any exception raised during login
verification is mapped onto the retry taxonomy. It is total: anything not
recognised becomes UNKNOWN (never retried).

Retry policy is a pure function of the category:

    VERIFICATION_AMBIGUOUS  once
    NETWORK                 up to 3
    TIMEOUT                 up to 2
    everything else         never
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import websocket

from .exceptions import (
    BrowserError,
    BrowserInitializationError,
    BrowserNavigationError,
    BrowserTimeoutError,
    CredentialEntryError,
    InvalidCredentialsError,
    LoginFormNotFoundError,
    LoginVerificationError,
    NetworkError,
    OperationCancelledError,
    SessionUnavailableError,
    WebConnectError,
)
from .http_client import HttpClientError


class FailureCategory(str, Enum):
    FORM_NOT_FOUND = "form_not_found"
    CREDENTIAL_ENTRY = "credential_entry"
    VERIFICATION_AMBIGUOUS = "verification_ambiguous"
    INVALID_CREDENTIALS = "invalid_credentials"
    BROWSER_UNAVAILABLE = "browser_unavailable"
    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


RETRY_LIMITS: dict[FailureCategory, int] = {
    FailureCategory.VERIFICATION_AMBIGUOUS: 1,
    FailureCategory.NETWORK: 3,
    FailureCategory.TIMEOUT: 2,
}

_DEFAULT_CODES: dict[FailureCategory, str] = {
    FailureCategory.FORM_NOT_FOUND: "LOGIN_FORM_001",
    FailureCategory.CREDENTIAL_ENTRY: "CREDENTIAL_ENTRY_001",
    FailureCategory.VERIFICATION_AMBIGUOUS: "LOGIN_VERIFY_001",
    FailureCategory.INVALID_CREDENTIALS: "INVALID_CREDS_001",
    FailureCategory.BROWSER_UNAVAILABLE: "BROWSER_SESSION_001",
    FailureCategory.NETWORK: "NETWORK_001",
    FailureCategory.TIMEOUT: "BROWSER_TIMEOUT_001",
    FailureCategory.CANCELLED: "OPERATION_CANCELED_001",
    FailureCategory.UNKNOWN: "UNKNOWN_001",
}


def is_retryable(category: FailureCategory) -> bool:
    return RETRY_LIMITS.get(category, 0) > 0


@dataclass(frozen=True)
class ClassifiedFailure:
    category: FailureCategory
    error_code: str
    message: str
    exception_type: str
    context: dict[str, Any] = field(default_factory=dict)
    timestamp_utc: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def retryable(self) -> bool:
        return is_retryable(self.category)

    @property
    def retry_limit(self) -> int:
        return RETRY_LIMITS.get(self.category, 0)

    def allows_retry(self, attempt: int) -> bool:
        """True if a retry after `attempt` failed attempts (1-based) is still allowed."""
        return self.retryable and attempt <= self.retry_limit

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "retryable": self.retryable,
            "error_code": self.error_code,
            "message": self.message,
            "exception_type": self.exception_type,
            "context": dict(self.context),
            "timestamp": self.timestamp_utc.isoformat(),
        }


def _http_client_category(exc: HttpClientError) -> FailureCategory:
    msg = str(exc).lower()
    if "timed out" in msg or "timeout" in msg:
        return FailureCategory.NETWORK
    return FailureCategory.BROWSER_UNAVAILABLE


# Ordered: subclasses before their bases.
_TYPE_TABLE: tuple[tuple[type[BaseException], FailureCategory], ...] = (
    (LoginFormNotFoundError, FailureCategory.FORM_NOT_FOUND),
    (CredentialEntryError, FailureCategory.CREDENTIAL_ENTRY),
    (InvalidCredentialsError, FailureCategory.INVALID_CREDENTIALS),
    (LoginVerificationError, FailureCategory.VERIFICATION_AMBIGUOUS),
    (OperationCancelledError, FailureCategory.CANCELLED),
    (BrowserTimeoutError, FailureCategory.TIMEOUT),
    (BrowserInitializationError, FailureCategory.BROWSER_UNAVAILABLE),
    (SessionUnavailableError, FailureCategory.BROWSER_UNAVAILABLE),
    (BrowserNavigationError, FailureCategory.NETWORK),
    (NetworkError, FailureCategory.NETWORK),
    (BrowserError, FailureCategory.BROWSER_UNAVAILABLE),
    (websocket.WebSocketConnectionClosedException, FailureCategory.BROWSER_UNAVAILABLE),
    (websocket.WebSocketTimeoutException, FailureCategory.NETWORK),
    (ConnectionRefusedError, FailureCategory.BROWSER_UNAVAILABLE),
    (ssl.SSLError, FailureCategory.NETWORK),
    (ConnectionError, FailureCategory.NETWORK),
    (TimeoutError, FailureCategory.NETWORK),
)


def _cause_chain(exc: BaseException, limit: int = 5) -> list[str]:
    chain: list[str] = []
    current = exc.__cause__ or exc.__context__
    while current is not None and len(chain) < limit:
        chain.append(f"{type(current).__name__}: {current}")
        current = current.__cause__ or current.__context__
    return chain


def classify(exc: BaseException) -> ClassifiedFailure:
    """Map any exception onto the failure taxonomy. Never raises."""
    category = FailureCategory.UNKNOWN
    if isinstance(exc, HttpClientError):
        category = _http_client_category(exc)
    else:
        for exc_type, mapped in _TYPE_TABLE:
            if isinstance(exc, exc_type):
                category = mapped
                break

    context: dict[str, Any] = {}
    if isinstance(exc, WebConnectError):
        message = exc.message
        error_code = exc.error_code
        context.update(exc.details())
        if exc.context:
            context["context"] = exc.context
        timestamp = exc.timestamp
    else:
        message = str(exc) or type(exc).__name__
        error_code = _DEFAULT_CODES[category]
        timestamp = datetime.now(timezone.utc)

    causes = _cause_chain(exc)
    if causes:
        context["causes"] = causes

    return ClassifiedFailure(
        category=category,
        error_code=error_code,
        message=message,
        exception_type=type(exc).__name__,
        context=context,
        timestamp_utc=timestamp,
    )


__all__ = ["ClassifiedFailure", "FailureCategory", "RETRY_LIMITS", "classify", "is_retryable"]
