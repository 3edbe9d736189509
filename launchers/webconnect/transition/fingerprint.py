"""Point-in-time page fingerprints.

The sampler never raises: every field is read independently and a failed read
degrades to a neutral value ("" / "unknown" / False / digest of empty markup).
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypedDict

logger = logging.getLogger("webconnect.transition")

READY_STATES = ("loading", "interactive", "complete")

LOADING_INDICATOR_SELECTORS: tuple[str, ...] = (
    ".loading:not([style*='display: none'])",
    ".spinner:not([style*='display: none'])",
    "*[class*='loading']:not([style*='display: none'])",
    "*[class*='spinner']:not([style*='display: none'])",
)


class ElementInfo(TypedDict):
    visible: bool
    text: str


class PageDriver(Protocol):
    """Read-only browser capability the engine needs."""

    def get_url(self) -> str: ...

    def get_title(self) -> str: ...

    def get_page_source(self) -> str: ...

    def eval_js(self, expression: str) -> Any: ...

    def query_elements(self, selector: str) -> list[ElementInfo]: ...


def content_digest(markup: str) -> str:
    return hashlib.sha256((markup or "").encode("utf-8", errors="replace")).hexdigest()


EMPTY_DIGEST = content_digest("")


@dataclass(frozen=True)
class PageFingerprint:
    url: str
    title: str
    ready_state: str
    content_digest: str
    has_visible_loading_indicator: bool
    captured_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "ready_state": self.ready_state,
            "content_digest": self.content_digest[:16],
            "loading": self.has_visible_loading_indicator,
        }


def normalize_ready_state(raw: Any) -> str:
    value = str(raw or "").strip().lower()
    return value if value in READY_STATES else "unknown"


class PageStateSampler:
    def __init__(
        self,
        loading_selectors: tuple[str, ...] = LOADING_INDICATOR_SELECTORS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.loading_selectors = tuple(loading_selectors)
        self._clock = clock

    def capture(self, driver: PageDriver) -> PageFingerprint:
        url = ""
        title = ""
        markup = ""
        ready_state = "unknown"

        try:
            url = str(driver.get_url() or "")
        except Exception as exc:  # noqa: BLE001
            logger.debug("sampler: url read failed: %s", exc)
        try:
            title = str(driver.get_title() or "")
        except Exception as exc:  # noqa: BLE001
            logger.debug("sampler: title read failed: %s", exc)
        try:
            ready_state = normalize_ready_state(driver.eval_js("document.readyState"))
        except Exception as exc:  # noqa: BLE001
            logger.debug("sampler: readyState read failed: %s", exc)
        try:
            markup = str(driver.get_page_source() or "")
        except Exception as exc:  # noqa: BLE001
            logger.debug("sampler: page source read failed: %s", exc)

        return PageFingerprint(
            url=url,
            title=title,
            ready_state=ready_state,
            content_digest=content_digest(markup),
            has_visible_loading_indicator=self._loading_visible(driver),
            captured_at=self._clock(),
        )

    def capture_navigation(self, driver: PageDriver) -> PageFingerprint:
        """Cheap URL/title-only sample (no markup, no selector queries)."""
        url = ""
        title = ""
        try:
            url = str(driver.get_url() or "")
        except Exception as exc:  # noqa: BLE001
            logger.debug("sampler: url read failed: %s", exc)
        try:
            title = str(driver.get_title() or "")
        except Exception as exc:  # noqa: BLE001
            logger.debug("sampler: title read failed: %s", exc)
        return PageFingerprint(
            url=url,
            title=title,
            ready_state="unknown",
            content_digest=EMPTY_DIGEST,
            has_visible_loading_indicator=False,
            captured_at=self._clock(),
        )

    def _loading_visible(self, driver: PageDriver) -> bool:
        for selector in self.loading_selectors:
            try:
                elements = driver.query_elements(selector) or []
            except Exception as exc:  # noqa: BLE001
                logger.debug("sampler: selector %s failed: %s", selector, exc)
                continue
            if any(el.get("visible") for el in elements):
                return True
        return False


__all__ = [
    "EMPTY_DIGEST",
    "ElementInfo",
    "LOADING_INDICATOR_SELECTORS",
    "PageDriver",
    "PageFingerprint",
    "PageStateSampler",
    "content_digest",
    "normalize_ready_state",
]
