"""Login verification (quick error scan + cascading-timeout transition check)."""

from .quick_errors import ERROR_PATTERNS, ERROR_SELECTORS, QuickErrorScanner
from .verifier import TransitionVerifier, VerificationReport

__all__ = ["ERROR_PATTERNS", "ERROR_SELECTORS", "QuickErrorScanner", "TransitionVerifier", "VerificationReport"]
