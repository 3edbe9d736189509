from __future__ import annotations

import logging
from dataclasses import dataclass

from ..cancellation import CancellationSignal
from ..exceptions import InvalidCredentialsError
from ..transition.fingerprint import PageDriver

logger = logging.getLogger("webconnect.verify")

ERROR_SELECTORS: tuple[str, ...] = (
    "div.error:not(:empty)",
    "span.error:not(:empty)",
    "p.error:not(:empty)",
    "div.alert-danger:not(:empty)",
    "div.alert-error:not(:empty)",
    "[role='alert']:not(:empty)",
)

ERROR_PATTERNS: tuple[str, ...] = (
    "invalid credentials",
    "login failed",
    "incorrect password",
    "access denied",
)

# Only the head of the document is scanned for error phrases.
SOURCE_SCAN_CHARS = 5000


@dataclass
class QuickErrorScanner:
    """Early-exit scan for login error banners and error phrases.

    Read failures are skipped; the scan stops as soon as `cancel` fires.
    """

    selectors: tuple[str, ...] = ERROR_SELECTORS
    patterns: tuple[str, ...] = ERROR_PATTERNS

    def scan(self, driver: PageDriver, cancel: CancellationSignal | None = None) -> list[str]:
        signal = cancel or CancellationSignal()
        messages: list[str] = []

        for selector in self.selectors:
            if signal.cancelled:
                return messages
            try:
                elements = driver.query_elements(selector) or []
            except Exception as exc:  # noqa: BLE001
                logger.debug("quick scan: selector %s failed: %s", selector, exc)
                continue
            for el in elements:
                text = (el.get("text") or "").strip()
                if el.get("visible") and text and text not in messages:
                    messages.append(text)
        if messages:
            return messages

        if signal.cancelled:
            return messages
        try:
            head = str(driver.get_page_source() or "")[:SOURCE_SCAN_CHARS].lower()
        except Exception as exc:  # noqa: BLE001
            logger.debug("quick scan: page source read failed: %s", exc)
            return messages
        for pattern in self.patterns:
            if pattern in head:
                messages.append(f"Error pattern found: {pattern}")
        return messages

    def raise_for_errors(self, driver: PageDriver, cancel: CancellationSignal | None = None) -> None:
        messages = self.scan(driver, cancel)
        if messages:
            logger.warning("login error detected: %s", "; ".join(messages))
            raise InvalidCredentialsError(
                "Login page reported an error", error_messages=messages, context="quick_error_scan"
            )


__all__ = ["ERROR_PATTERNS", "ERROR_SELECTORS", "QuickErrorScanner"]
