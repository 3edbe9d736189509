"""
Post-submit login verification inside cascading timeout envelopes.

    external_timeout  (watchdog: cancels + aborts the CDP socket on overrun)
      internal_timeout
        1. quick error scan            <= quick_error_timeout
        2. transition detection        remaining internal budget
        3. post-stabilization scan     <= time_per_method(remaining, 2)

verify() raises WebConnectError subclasses for negative verdicts.
attempt() never raises and returns a VerificationReport with the classified
failure instead.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

from ..cancellation import CancellationSignal
from ..config import EngineConfig
from ..exceptions import (
    BrowserTimeoutError,
    InvalidCredentialsError,
    LoginVerificationError,
    OperationCancelledError,
)
from ..failures import ClassifiedFailure, classify
from ..transition.detector import DetectionOutcome, OutcomeKind, TransitionDetector
from ..transition.fingerprint import PageDriver
from .quick_errors import QuickErrorScanner

logger = logging.getLogger("webconnect.verify")


@dataclass(frozen=True)
class VerificationReport:
    outcome: DetectionOutcome | None
    failure: ClassifiedFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.outcome is not None and self.outcome.transitioned

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ok": self.ok}
        if self.outcome is not None:
            out.update(self.outcome.to_dict())
        if self.failure is not None:
            out["failure"] = self.failure.to_dict()
        return out


class _EnvelopeWatchdog:
    """Thread-based guard for the external envelope (no SIGALRM dependency)."""

    def __init__(self, *, timeout_s: float, signal: CancellationSignal, driver: Any) -> None:
        self.timeout_s = float(timeout_s)
        self.fired = threading.Event()
        self._signal = signal
        self._driver = driver
        self._timer: threading.Timer | None = None

    def start(self) -> None:
        if self.timeout_s <= 0:
            return

        def _fire() -> None:
            self.fired.set()
            self._signal.cancel("timeout")
            # A blocked recv() never sees the signal; break the socket instead.
            conn = getattr(self._driver, "conn", None)
            if conn is not None and hasattr(conn, "abort"):
                with suppress(Exception):
                    conn.abort()

        t = threading.Timer(self.timeout_s, _fire)
        t.daemon = True
        t.start()
        self._timer = t

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


@dataclass(frozen=True)
class _Run:
    outcome: DetectionOutcome
    internal: CancellationSignal
    envelope_expired: bool
    late_errors: list[str]


class TransitionVerifier:
    """Construct before submitting the login form; call verify() right after."""

    def __init__(
        self,
        driver: PageDriver,
        config: EngineConfig | None = None,
        *,
        scanner: QuickErrorScanner | None = None,
        clock: Callable[[], float] = time.monotonic,
        watchdog: bool = True,
    ) -> None:
        self.driver = driver
        self.config = config or EngineConfig()
        self.scanner = scanner or QuickErrorScanner()
        self._clock = clock
        self._watchdog = watchdog
        self.detector = TransitionDetector(
            driver,
            self.config.detector,
            clock=clock,
            redact=not self.config.log_sensitive,
        )

    def verify(self, cancel: CancellationSignal | None = None, *, fast: bool = False) -> DetectionOutcome:
        """Return the TRANSITIONED outcome or raise the matching WebConnectError."""
        run = self._execute(cancel, fast=fast)
        verdict = self._verdict(run, cancel)
        if verdict is not None:
            raise verdict
        return run.outcome

    def attempt(self, cancel: CancellationSignal | None = None, *, fast: bool = False) -> VerificationReport:
        """verify() without raising: failures come back classified."""
        try:
            run = self._execute(cancel, fast=fast)
        except Exception as exc:  # noqa: BLE001
            failure = classify(exc)
            logger.info("verification failed: %s (%s)", failure.message, failure.category.value)
            return VerificationReport(outcome=None, failure=failure)

        verdict = self._verdict(run, cancel)
        if verdict is None:
            return VerificationReport(outcome=run.outcome)
        # Keep the detector's own failure when it had one; the verdict only wraps it.
        failure = run.outcome.failure or classify(verdict)
        logger.info("verification failed: %s (%s)", failure.message, failure.category.value)
        return VerificationReport(outcome=run.outcome, failure=failure)

    def _execute(self, cancel: CancellationSignal | None, *, fast: bool) -> _Run:
        policy = self.config.timeouts
        external = CancellationSignal(timeout=policy.external_timeout, parent=cancel, clock=self._clock)
        internal = external.linked(policy.internal_timeout)

        guard: _EnvelopeWatchdog | None = None
        if self._watchdog:
            guard = _EnvelopeWatchdog(timeout_s=policy.external_timeout, signal=external, driver=self.driver)
            guard.start()
        try:
            self.scanner.raise_for_errors(self.driver, internal.linked(policy.quick_error_timeout))

            remaining = internal.remaining()
            budget = policy.internal_timeout if remaining is None else remaining
            if fast:
                outcome = self.detector.detect_fast(budget, internal)
            else:
                outcome = self.detector.detect(budget, internal)

            late_errors: list[str] = []
            if outcome.transitioned:
                # Error banners often render only after the spinner goes away.
                left = external.remaining()
                per_method = policy.time_per_method(left if left is not None else budget, 2)
                late_errors = self.scanner.scan(self.driver, external.linked(per_method))
        finally:
            if guard is not None:
                guard.stop()

        return _Run(
            outcome=outcome,
            internal=internal,
            envelope_expired=guard is not None and guard.fired.is_set(),
            late_errors=late_errors,
        )

    def _verdict(self, run: _Run, cancel: CancellationSignal | None) -> Exception | None:
        policy = self.config.timeouts
        outcome = run.outcome
        kind = outcome.kind

        if kind is OutcomeKind.TRANSITIONED:
            if run.late_errors:
                return InvalidCredentialsError(
                    "Login page reported an error after the transition",
                    error_messages=run.late_errors,
                    context="post_transition_scan",
                )
            return None
        if outcome.failure is not None:
            return OperationCancelledError(
                f"Transition detection aborted: {outcome.failure.message}",
                operation="page_transition",
                context=outcome.failure.category.value,
            )
        if run.envelope_expired:
            return BrowserTimeoutError(
                f"Login verification exceeded {policy.external_timeout:g}s",
                operation="login_verification",
                timeout_ms=_to_ms(policy.external_timeout),
                context="external_timeout",
            )
        if kind is OutcomeKind.TRANSITIONED_NOT_STABILIZED:
            return LoginVerificationError("Page changed after submit but did not stabilize", context=outcome.last_change)

        caller_cancelled = cancel is not None and cancel.cancelled and not cancel.timed_out
        if kind is OutcomeKind.NO_TRANSITION_TIMED_OUT or (run.internal.timed_out and not caller_cancelled):
            return BrowserTimeoutError(
                f"No page transition within {policy.internal_timeout:g}s",
                operation="page_transition",
                timeout_ms=_to_ms(policy.internal_timeout),
            )
        return OperationCancelledError("Login verification cancelled", operation="page_transition")


__all__ = ["TransitionVerifier", "VerificationReport"]
