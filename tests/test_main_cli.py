from __future__ import annotations

import json
from typing import Any

import pytest


def test_invalid_configuration_exits_2(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    from launchers.webconnect import main as main_mod

    monkeypatch.setenv("WEBCONNECT_EXTERNAL_TIMEOUT", "1")
    monkeypatch.setattr(main_mod, "configure_logging", lambda **_: None)

    assert main_mod.main([]) == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is False
    assert payload["failure"]["error_code"] == "CONFIG_001"


def test_unreachable_browser_exits_2(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    from launchers.webconnect import main as main_mod
    from launchers.webconnect.exceptions import SessionUnavailableError

    def _no_browser(config: Any) -> Any:
        raise SessionUnavailableError("DevTools endpoint not reachable", endpoint=config.endpoint)

    monkeypatch.delenv("WEBCONNECT_EXTERNAL_TIMEOUT", raising=False)
    monkeypatch.setattr(main_mod, "configure_logging", lambda **_: None)
    monkeypatch.setattr(main_mod, "connect_session", _no_browser)

    assert main_mod.main(["--port", "9444"]) == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["failure"]["endpoint"] == "http://127.0.0.1:9444"


def test_successful_run_prints_report(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    from launchers.webconnect import main as main_mod
    from launchers.webconnect.transition import DetectionOutcome, OutcomeKind
    from launchers.webconnect.verification import VerificationReport

    class DummySession:
        tab_id = "T1"
        closed = False

        def __enter__(self) -> DummySession:
            return self

        def __exit__(self, *args: Any) -> None:
            DummySession.closed = True

    seen: dict[str, Any] = {}

    class DummyVerifier:
        def __init__(self, driver: Any, config: Any) -> None:
            seen["driver"] = driver
            seen["profile"] = config.profile

        def attempt(self, cancel: Any, *, fast: bool = False) -> VerificationReport:
            seen["fast"] = fast
            return VerificationReport(DetectionOutcome(OutcomeKind.TRANSITIONED, stable_after_ms=420))

    monkeypatch.delenv("WEBCONNECT_EXTERNAL_TIMEOUT", raising=False)
    monkeypatch.setattr(main_mod, "configure_logging", lambda **_: None)
    monkeypatch.setattr(main_mod, "connect_session", lambda config: DummySession())
    monkeypatch.setattr(main_mod, "TransitionVerifier", DummyVerifier)

    assert main_mod.main(["--profile", "fast", "--fast"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is True
    assert payload["stable_after_ms"] == 420
    assert payload["config"]["profile"] == "fast"
    assert seen["fast"] is True
    assert seen["profile"] == "fast"
    assert DummySession.closed is True
