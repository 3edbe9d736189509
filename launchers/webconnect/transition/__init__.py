"""Page transition detection (fingerprints, change reports, adaptive polling)."""

from .changes import ChangeReport, diff, diff_navigation
from .detector import DetectionOutcome, DetectorSettings, OutcomeKind, TransitionDetector
from .fingerprint import (
    LOADING_INDICATOR_SELECTORS,
    ElementInfo,
    PageDriver,
    PageFingerprint,
    PageStateSampler,
)

__all__ = [
    "ChangeReport",
    "DetectionOutcome",
    "DetectorSettings",
    "ElementInfo",
    "LOADING_INDICATOR_SELECTORS",
    "OutcomeKind",
    "PageDriver",
    "PageFingerprint",
    "PageStateSampler",
    "TransitionDetector",
    "diff",
    "diff_navigation",
]
