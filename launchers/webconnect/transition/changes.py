"""Fingerprint comparison."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..redaction import redact_url
from .fingerprint import PageFingerprint


@dataclass(frozen=True)
class ChangeReport:
    url_changed: bool
    title_changed: bool
    ready_state_changed: bool
    content_changed: bool
    loading_state_changed: bool
    current_loading: bool
    summary: str = ""

    @property
    def is_significant(self) -> bool:
        # Markup churn while a spinner is up is not a transition yet.
        return self.url_changed or self.title_changed or (self.content_changed and not self.current_loading)

    @property
    def any_change(self) -> bool:
        return (
            self.url_changed
            or self.title_changed
            or self.ready_state_changed
            or self.content_changed
            or self.loading_state_changed
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url_changed,
            "title": self.title_changed,
            "ready_state": self.ready_state_changed,
            "content": self.content_changed,
            "loading": self.loading_state_changed,
            "significant": self.is_significant,
            "summary": self.summary,
        }


def _summarize(previous: PageFingerprint, current: PageFingerprint, flags: dict[str, bool], *, redact: bool) -> str:
    show = redact_url if redact else (lambda u: u)
    parts: list[str] = []
    if flags["url"]:
        parts.append(f"url: {show(previous.url)} -> {show(current.url)}")
    if flags["title"]:
        parts.append(f"title: {previous.title!r} -> {current.title!r}")
    if flags["ready_state"]:
        parts.append(f"readyState: {previous.ready_state} -> {current.ready_state}")
    if flags["content"]:
        parts.append("content changed")
    if flags["loading"]:
        parts.append(f"loading: {previous.has_visible_loading_indicator} -> {current.has_visible_loading_indicator}")
    return "; ".join(parts)


def diff(previous: PageFingerprint, current: PageFingerprint, *, redact: bool = True) -> ChangeReport:
    """Compare two fingerprints. Pure and total."""
    flags = {
        "url": previous.url.lower() != current.url.lower(),
        "title": previous.title != current.title,
        "ready_state": previous.ready_state.lower() != current.ready_state.lower(),
        "content": previous.content_digest != current.content_digest,
        "loading": previous.has_visible_loading_indicator != current.has_visible_loading_indicator,
    }
    return ChangeReport(
        url_changed=flags["url"],
        title_changed=flags["title"],
        ready_state_changed=flags["ready_state"],
        content_changed=flags["content"],
        loading_state_changed=flags["loading"],
        current_loading=current.has_visible_loading_indicator,
        summary=_summarize(previous, current, flags, redact=redact),
    )


def diff_navigation(baseline: PageFingerprint, current: PageFingerprint, *, redact: bool = True) -> ChangeReport:
    """URL/title-only comparison used by the fast check."""
    flags = {
        "url": baseline.url.lower() != current.url.lower(),
        "title": baseline.title != current.title,
        "ready_state": False,
        "content": False,
        "loading": False,
    }
    return ChangeReport(
        url_changed=flags["url"],
        title_changed=flags["title"],
        ready_state_changed=False,
        content_changed=False,
        loading_state_changed=False,
        current_loading=current.has_visible_loading_indicator,
        summary=_summarize(baseline, current, flags, redact=redact),
    )


__all__ = ["ChangeReport", "diff", "diff_navigation"]
