"""
Adaptive page-transition detection.

State machine per detect() call:

    AWAITING_INITIAL_DELAY -> POLLING -> STABILIZING -> terminal

- POLLING: sample every `interval`, growing by `growth_factor` up to
  `max_polling_interval`. The first sample after the delay is the reference;
  the baseline only feeds detect_fast().
- A significant change (URL, title, or settled markup) moves to STABILIZING and
  resets the stable counter; any later significant change resets it again.
- `required_stable_checks` consecutive quiet samples after a change is the only
  success exit.

Waits go through CancellationSignal.wait(), so cancellation is observed within
one polling tick. Exceptions never escape detect(); they are classified and
reported as a CANCELLED outcome carrying the failure.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from ..cancellation import CancellationSignal
from ..exceptions import ConfigurationError
from ..failures import ClassifiedFailure, classify
from ..redaction import redact_url
from ..timeouts import TimeoutPolicy
from .changes import diff, diff_navigation
from .fingerprint import LOADING_INDICATOR_SELECTORS, PageDriver, PageFingerprint, PageStateSampler

logger = logging.getLogger("webconnect.transition")

_DEFAULT_MAX_POLL_S = 0.5


class OutcomeKind(str, Enum):
    TRANSITIONED = "transitioned"
    TRANSITIONED_NOT_STABILIZED = "transitioned_not_stabilized"
    NO_TRANSITION_TIMED_OUT = "no_transition_timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class DetectionOutcome:
    kind: OutcomeKind
    stable_after_ms: int | None = None
    elapsed_ms: int = 0
    polls: int = 0
    transition_seen: bool = False
    last_change: str = ""
    failure: ClassifiedFailure | None = None

    @property
    def transitioned(self) -> bool:
        return self.kind is OutcomeKind.TRANSITIONED

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "outcome": self.kind.value,
            "elapsed_ms": self.elapsed_ms,
            "polls": self.polls,
            "transition_seen": self.transition_seen,
        }
        if self.stable_after_ms is not None:
            out["stable_after_ms"] = self.stable_after_ms
        if self.last_change:
            out["last_change"] = self.last_change
        if self.failure is not None:
            out["failure"] = self.failure.to_dict()
        return out


@dataclass(frozen=True)
class DetectorSettings:
    initial_delay: float = 0.5
    initial_polling_interval: float = 0.1
    max_polling_interval: float = _DEFAULT_MAX_POLL_S
    growth_factor: float = 1.5
    required_stable_checks: int = 2
    fast_polling_interval: float = 0.1
    loading_selectors: tuple[str, ...] = LOADING_INDICATOR_SELECTORS

    def __post_init__(self) -> None:
        if self.initial_delay < 0:
            raise ConfigurationError(
                f"initial_delay ({self.initial_delay:g}s) must not be negative", parameter_names=("initial_delay",)
            )
        if self.initial_polling_interval <= 0 or self.fast_polling_interval <= 0:
            raise ConfigurationError(
                "polling intervals must be positive",
                parameter_names=("initial_polling_interval", "fast_polling_interval"),
            )
        if self.initial_polling_interval > self.max_polling_interval:
            raise ConfigurationError(
                f"initial_polling_interval ({self.initial_polling_interval:g}s) must not exceed "
                f"max_polling_interval ({self.max_polling_interval:g}s)",
                parameter_names=("initial_polling_interval", "max_polling_interval"),
            )
        if self.growth_factor < 1.0:
            raise ConfigurationError(
                f"growth_factor ({self.growth_factor:g}) must be >= 1", parameter_names=("growth_factor",)
            )
        if self.required_stable_checks < 1:
            raise ConfigurationError(
                f"required_stable_checks ({self.required_stable_checks}) must be >= 1",
                parameter_names=("required_stable_checks",),
            )

    @classmethod
    def from_policy(cls, policy: TimeoutPolicy, **overrides: Any) -> DetectorSettings:
        """Detector timing derived from the cascade: initial delay and first poll period."""
        base = cls(
            initial_delay=policy.initial_delay,
            initial_polling_interval=policy.polling_interval,
            max_polling_interval=max(policy.polling_interval, _DEFAULT_MAX_POLL_S),
        )
        return replace(base, **overrides) if overrides else base

    def to_dict(self) -> dict[str, Any]:
        return {
            "initial_delay": self.initial_delay,
            "initial_polling_interval": self.initial_polling_interval,
            "max_polling_interval": self.max_polling_interval,
            "growth_factor": self.growth_factor,
            "required_stable_checks": self.required_stable_checks,
            "fast_polling_interval": self.fast_polling_interval,
        }


def _ms(seconds: float) -> int:
    return int(max(0.0, seconds) * 1000)


class TransitionDetector:
    """Decides whether the page moved after a form submit, and whether it settled.

    Construct it *before* submitting: the constructor captures the baseline.
    """

    def __init__(
        self,
        driver: PageDriver,
        settings: DetectorSettings | None = None,
        *,
        sampler: PageStateSampler | None = None,
        clock: Callable[[], float] = time.monotonic,
        redact: bool = True,
    ) -> None:
        self.driver = driver
        self.settings = settings or DetectorSettings()
        self.sampler = sampler or PageStateSampler(self.settings.loading_selectors, clock=clock)
        self._clock = clock
        self._redact = redact
        self.baseline: PageFingerprint = self.sampler.capture(driver)
        logger.debug(
            "transition baseline url=%s title=%r readyState=%s",
            self._show(self.baseline.url),
            self.baseline.title,
            self.baseline.ready_state,
        )

    def _show(self, url: str) -> str:
        return redact_url(url) if self._redact else url

    def detect(self, total_budget: float, cancel: CancellationSignal | None = None) -> DetectionOutcome:
        """Poll until the page transitions and stabilizes, the budget runs out, or cancel fires."""
        settings = self.settings
        signal = cancel or CancellationSignal()
        run_id = uuid.uuid4().hex[:8]
        start = self._clock()
        polls = 0
        seen = False
        last_change = ""

        def elapsed() -> float:
            return self._clock() - start

        logger.info("[%s] transition detection started budget=%.2fs", run_id, total_budget)
        try:
            if settings.initial_delay > 0 and signal.wait(settings.initial_delay):
                return self._finish(run_id, OutcomeKind.CANCELLED, elapsed(), polls, seen, last_change)

            interval = settings.initial_polling_interval
            stable = 0
            # Reference sample: changes made during the initial delay are not transitions.
            last = self.sampler.capture(self.driver)

            cancelled = False
            while elapsed() < total_budget:
                if signal.wait(interval):
                    cancelled = True
                    break

                current = self.sampler.capture(self.driver)
                polls += 1
                change = diff(last, current, redact=self._redact)

                if change.is_significant:
                    seen = True
                    stable = 0
                    last_change = change.summary
                    logger.debug("[%s] poll %d significant change: %s", run_id, polls, change.summary)
                elif seen:
                    stable += 1
                    logger.debug("[%s] poll %d stable %d/%d", run_id, polls, stable, settings.required_stable_checks)
                    if stable >= settings.required_stable_checks:
                        return self._finish(
                            run_id,
                            OutcomeKind.TRANSITIONED,
                            elapsed(),
                            polls,
                            seen,
                            last_change,
                            stable_after_ms=_ms(elapsed()),
                        )

                interval = min(interval * settings.growth_factor, settings.max_polling_interval)
                last = current

            if cancelled:
                kind = OutcomeKind.TRANSITIONED_NOT_STABILIZED if seen else OutcomeKind.CANCELLED
            else:
                kind = OutcomeKind.TRANSITIONED_NOT_STABILIZED if seen else OutcomeKind.NO_TRANSITION_TIMED_OUT
            return self._finish(run_id, kind, elapsed(), polls, seen, last_change)
        except Exception as exc:  # noqa: BLE001
            failure = classify(exc)
            logger.warning(
                "[%s] transition detection aborted: %s (%s)", run_id, failure.message, failure.category.value
            )
            return self._finish(run_id, OutcomeKind.CANCELLED, elapsed(), polls, seen, last_change, failure=failure)

    def detect_fast(self, total_budget: float, cancel: CancellationSignal | None = None) -> DetectionOutcome:
        """URL/title-only check against the baseline; returns on the first change.

        No initial delay and no stabilization phase. Useful when the caller only
        needs to know that navigation started.
        """
        signal = cancel or CancellationSignal()
        run_id = uuid.uuid4().hex[:8]
        start = self._clock()
        polls = 0

        def elapsed() -> float:
            return self._clock() - start

        logger.info("[%s] fast transition check started budget=%.2fs", run_id, total_budget)
        try:
            while elapsed() < total_budget:
                current = self.sampler.capture_navigation(self.driver)
                polls += 1
                change = diff_navigation(self.baseline, current, redact=self._redact)
                if change.is_significant:
                    return self._finish(
                        run_id,
                        OutcomeKind.TRANSITIONED,
                        elapsed(),
                        polls,
                        True,
                        change.summary,
                        stable_after_ms=_ms(elapsed()),
                    )
                if signal.wait(self.settings.fast_polling_interval):
                    return self._finish(run_id, OutcomeKind.CANCELLED, elapsed(), polls, False, "")
            return self._finish(run_id, OutcomeKind.NO_TRANSITION_TIMED_OUT, elapsed(), polls, False, "")
        except Exception as exc:  # noqa: BLE001
            failure = classify(exc)
            logger.warning("[%s] fast transition check aborted: %s", run_id, failure.message)
            return self._finish(run_id, OutcomeKind.CANCELLED, elapsed(), polls, False, "", failure=failure)

    def _finish(
        self,
        run_id: str,
        kind: OutcomeKind,
        elapsed_s: float,
        polls: int,
        seen: bool,
        last_change: str,
        *,
        stable_after_ms: int | None = None,
        failure: ClassifiedFailure | None = None,
    ) -> DetectionOutcome:
        outcome = DetectionOutcome(
            kind=kind,
            stable_after_ms=stable_after_ms,
            elapsed_ms=_ms(elapsed_s),
            polls=polls,
            transition_seen=seen,
            last_change=last_change,
            failure=failure,
        )
        logger.info(
            "[%s] transition detection finished: %s after %dms (%d polls)", run_id, kind.value, outcome.elapsed_ms, polls
        )
        return outcome


__all__ = ["DetectionOutcome", "DetectorSettings", "OutcomeKind", "TransitionDetector"]
