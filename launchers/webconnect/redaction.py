"""URL redaction for log lines and change summaries.

Login pages routinely carry secrets in the URL (SSO tickets, OAuth codes,
session ids). Everything that leaves the engine as text goes through here.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_SUBSTRINGS = (
    "token",
    "secret",
    "password",
    "passwd",
    "pwd",
    "session",
    "jwt",
    "bearer",
    "saml",
    "ticket",
    "otp",
    "api-key",
    "api_key",
    "apikey",
)

_SENSITIVE_EXACT = {
    # "auth" alone, not "author".
    "auth",
    "code",
    "sid",
    "pass",
}


def is_sensitive_key(key: str) -> bool:
    k = (key or "").strip().lower()
    if not k:
        return False
    if k in _SENSITIVE_EXACT:
        return True
    return any(s in k for s in _SENSITIVE_SUBSTRINGS)


def _looks_like_query_string(value: str) -> bool:
    return bool(value) and "=" in value


def _redact_pairs(raw: str) -> str | None:
    """Return the re-encoded query with sensitive values masked, or None if untouched."""
    pairs = parse_qsl(raw, keep_blank_values=True)
    redacted_any = False
    out_pairs: list[tuple[str, str]] = []
    for k, v in pairs:
        if v and is_sensitive_key(k):
            out_pairs.append((k, "<redacted>"))
            redacted_any = True
        else:
            out_pairs.append((k, v))
    return urlencode(out_pairs, doseq=True) if redacted_any else None


def redact_url(url: str) -> str:
    """Redact sensitive URL parameters without destroying normal queries.

    - Keeps non-sensitive query params intact.
    - Masks values for keys like token/session/code/ticket.
    - Masks the fragment when it looks like a query string (OAuth implicit flow).
    - Removes userinfo (`user:pass@host`) from netloc.

    Returns the original URL unchanged when nothing needs redaction.
    """
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    changed = False
    netloc = parts.netloc
    query = parts.query
    fragment = parts.fragment

    if "@" in netloc:
        netloc = netloc.split("@", 1)[1]
        changed = True

    if query:
        masked = _redact_pairs(query)
        if masked is not None:
            query = masked
            changed = True

    if fragment and _looks_like_query_string(fragment):
        masked = _redact_pairs(fragment)
        if masked is not None:
            fragment = masked
            changed = True

    if not changed:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, fragment))


def redact_url_brief(url: str) -> str:
    """Low-noise URL redaction (drops query+fragment; removes userinfo)."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc.split("@", 1)[1] if "@" in parts.netloc else parts.netloc
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


__all__ = ["is_sensitive_key", "redact_url", "redact_url_brief"]
