from __future__ import annotations


def test_known_exceptions_map_to_expected_categories() -> None:
    import ssl

    import websocket

    from launchers.webconnect import exceptions as exc
    from launchers.webconnect.failures import FailureCategory, classify
    from launchers.webconnect.http_client import HttpClientError

    cases = [
        (exc.LoginFormNotFoundError("no form", page_url="https://a.example/login"), FailureCategory.FORM_NOT_FOUND),
        (exc.CredentialEntryError("cannot type", field_type="password"), FailureCategory.CREDENTIAL_ENTRY),
        (exc.LoginVerificationError("unclear"), FailureCategory.VERIFICATION_AMBIGUOUS),
        (exc.InvalidCredentialsError("bad", error_messages=["Wrong"]), FailureCategory.INVALID_CREDENTIALS),
        (exc.BrowserInitializationError("no chrome"), FailureCategory.BROWSER_UNAVAILABLE),
        (exc.SessionUnavailableError("tab gone"), FailureCategory.BROWSER_UNAVAILABLE),
        (exc.BrowserNavigationError("net::ERR", target_url="https://a.example"), FailureCategory.NETWORK),
        (exc.BrowserTimeoutError("slow", operation="page_transition", timeout_ms=15000), FailureCategory.TIMEOUT),
        (exc.ConnectionFailedError("refused", target_url="https://a.example"), FailureCategory.NETWORK),
        (exc.CertificateError("bad cert", subject="CN=a"), FailureCategory.NETWORK),
        (exc.RequestTimeoutError("slow", request_url="https://a.example", timeout_ms=500), FailureCategory.NETWORK),
        (exc.OperationCancelledError("stop", operation="page_transition"), FailureCategory.CANCELLED),
        (websocket.WebSocketConnectionClosedException("closed"), FailureCategory.BROWSER_UNAVAILABLE),
        (websocket.WebSocketTimeoutException("timed out"), FailureCategory.NETWORK),
        (ConnectionRefusedError(111, "refused"), FailureCategory.BROWSER_UNAVAILABLE),
        (ConnectionResetError(104, "reset"), FailureCategory.NETWORK),
        (ssl.SSLError("handshake"), FailureCategory.NETWORK),
        (TimeoutError("socket"), FailureCategory.NETWORK),
        (HttpClientError("CDP response timed out"), FailureCategory.NETWORK),
        (HttpClientError("[Errno 111] Connection refused"), FailureCategory.BROWSER_UNAVAILABLE),
    ]
    for error, expected in cases:
        failure = classify(error)
        assert failure.category is expected, (type(error).__name__, failure.category)


def test_unrecognised_exception_is_unknown_and_not_retryable() -> None:
    from launchers.webconnect.exceptions import ConfigurationError
    from launchers.webconnect.failures import FailureCategory, classify

    for error in (KeyError("x"), ValueError("bad"), ConfigurationError("broken")):
        failure = classify(error)
        assert failure.category is FailureCategory.UNKNOWN
        assert failure.retryable is False

    assert classify(KeyError("x")).error_code == "UNKNOWN_001"
    assert classify(ConfigurationError("broken")).error_code == "CONFIG_001"


def test_retryability_follows_category_only() -> None:
    from launchers.webconnect.exceptions import BrowserTimeoutError, InvalidCredentialsError, LoginVerificationError
    from launchers.webconnect.failures import classify

    ambiguous = classify(LoginVerificationError("unclear"))
    assert ambiguous.retryable is True
    assert ambiguous.retry_limit == 1
    assert ambiguous.allows_retry(1) is True
    assert ambiguous.allows_retry(2) is False

    timeout = classify(BrowserTimeoutError("slow"))
    assert timeout.retry_limit == 2
    assert timeout.allows_retry(2) is True
    assert timeout.allows_retry(3) is False

    invalid = classify(InvalidCredentialsError("bad"))
    assert invalid.retryable is False
    assert invalid.allows_retry(1) is False


def test_domain_fields_are_copied_verbatim() -> None:
    from launchers.webconnect.exceptions import CertificateError, LoginFormNotFoundError
    from launchers.webconnect.failures import classify

    failure = classify(LoginFormNotFoundError("no form", page_url="https://a.example/login", context="discovery"))
    assert failure.error_code == "LOGIN_FORM_001"
    assert failure.message == "no form"
    assert failure.context["page_url"] == "https://a.example/login"
    assert failure.context["context"] == "discovery"

    cert = classify(CertificateError("bad", target_url="https://b.example", subject="CN=b", validation_errors=["expired"]))
    assert cert.context == {"target_url": "https://b.example", "subject": "CN=b", "validation_errors": ["expired"]}


def test_cause_chain_is_recorded() -> None:
    from launchers.webconnect.exceptions import SessionUnavailableError
    from launchers.webconnect.failures import classify

    try:
        try:
            raise ConnectionRefusedError(111, "Connection refused")
        except ConnectionRefusedError as inner:
            raise SessionUnavailableError("DevTools endpoint not reachable", endpoint="http://127.0.0.1:9222") from inner
    except SessionUnavailableError as outer:
        failure = classify(outer)

    assert failure.context["endpoint"] == "http://127.0.0.1:9222"
    assert failure.context["causes"][0].startswith("ConnectionRefusedError")
    payload = failure.to_dict()
    assert payload["category"] == "browser_unavailable"
    assert payload["exception_type"] == "SessionUnavailableError"


def test_error_to_dict_shape() -> None:
    from launchers.webconnect.exceptions import BrowserTimeoutError

    err = BrowserTimeoutError("No page transition", operation="page_transition", timeout_ms=15000)
    payload = err.to_dict()

    assert payload["error"] == "BrowserTimeoutError"
    assert payload["error_code"] == "BROWSER_TIMEOUT_001"
    assert payload["operation"] == "page_transition"
    assert payload["timeout_ms"] == 15000
    assert payload["timestamp"].endswith("+00:00")
    assert str(err) == "[BROWSER_TIMEOUT_001] No page transition"
