"""
CDP-backed page driver.

Attaches to an already-running Chrome (remote debugging port) and exposes the
read-only primitives the transition engine samples:

- CdpConnection: low-level websocket-client connection with deadline-bounded recv
- BrowserSession: URL / title / markup / readyState / selector visibility
- connect_session(): discover a page target via /json/list and attach to it
"""

from __future__ import annotations

import json
import logging
import socket
import time
from contextlib import suppress
from typing import Any

import websocket

from .config import BrowserConfig
from .exceptions import SessionUnavailableError
from .http_client import HttpClientError, http_get_json
from .redaction import redact_url_brief
from .transition.fingerprint import ElementInfo

logger = logging.getLogger("webconnect.session")

# Evaluated per selector; returns [{visible, text}] for every match.
_QUERY_ELEMENTS_JS = """
(() => {
  let nodes;
  try { nodes = document.querySelectorAll(%s); } catch (e) { return []; }
  const out = [];
  for (const el of nodes) {
    const style = window.getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    const visible = style.display !== 'none'
      && style.visibility !== 'hidden'
      && parseFloat(style.opacity || '1') > 0
      && rect.width > 0 && rect.height > 0;
    out.push({visible, text: (el.innerText || el.textContent || '').trim().slice(0, 500)});
    if (out.length >= 50) break;
  }
  return out;
})()
"""


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws_url: str, timeout: float = 5.0):
        self.ws = websocket.create_connection(ws_url, timeout=timeout)
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1

    def abort(self) -> None:
        """Hard break of the underlying socket (close() handshakes can hang)."""
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(OSError):
                sock.close()

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(msg))
        except websocket.WebSocketConnectionClosedException:
            raise
        except Exception as exc:  # noqa: BLE001
            raise HttpClientError(str(exc)) from exc

        return self._recv_until(msg_id)

    def _recv_until(self, expected_id: int) -> dict[str, Any]:
        """Wait for response with specific ID; events are skipped."""
        deadline = time.time() + self.timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise HttpClientError("CDP response timed out")

            # Small socket timeout so our own deadline is enforced.
            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except websocket.WebSocketTimeoutException:
                continue
            except websocket.WebSocketConnectionClosedException:
                raise
            except Exception as exc:  # noqa: BLE001
                if isinstance(exc, TimeoutError) or "timed out" in str(exc).lower():
                    continue
                raise HttpClientError(str(exc)) from exc

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if not isinstance(data, dict) or data.get("id") != expected_id:
                continue
            if "error" in data:
                raise HttpClientError(str(data["error"]))
            return data.get("result", {})

    def close(self) -> None:
        self.abort()


class BrowserSession:
    """
    Read-only browser session for a specific tab.

    Implements the PageDriver protocol used by the transition engine.
    Use as context manager for automatic cleanup.
    """

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._runtime_enabled = False

    def __enter__(self) -> BrowserSession:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    def enable_runtime(self) -> None:
        if self._runtime_enabled:
            return
        self.conn.send("Runtime.enable")
        self._runtime_enabled = True

    def eval_js(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate JavaScript and return its value (undefined and null map to None)."""
        old_timeout: float | None = None
        if timeout is not None:
            old_timeout = float(self.conn.timeout)
            self.conn.timeout = float(timeout)
        try:
            result = self.conn.send(
                "Runtime.evaluate",
                {
                    "expression": expression,
                    "returnByValue": True,
                    "awaitPromise": True,
                },
            )
        finally:
            if old_timeout is not None:
                self.conn.timeout = old_timeout

        if "exceptionDetails" in result:
            details = result.get("exceptionDetails") or {}
            raise HttpClientError(f"JS evaluation failed: {details.get('text') or 'exception'}")
        if "result" not in result:
            return None
        value = result["result"]
        if isinstance(value, dict) and value.get("type") == "undefined":
            return None
        if isinstance(value, dict) and value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value", value) if isinstance(value, dict) else value

    def get_url(self) -> str:
        return self.eval_js("window.location.href") or ""

    def get_title(self) -> str:
        return self.eval_js("document.title") or ""

    def get_page_source(self) -> str:
        return self.eval_js("document.documentElement ? document.documentElement.outerHTML : ''") or ""

    def ready_state(self) -> str:
        return str(self.eval_js("document.readyState") or "")

    def query_elements(self, selector: str) -> list[ElementInfo]:
        raw = self.eval_js(_QUERY_ELEMENTS_JS % json.dumps(selector))
        if not isinstance(raw, list):
            return []
        out: list[ElementInfo] = []
        for item in raw:
            if isinstance(item, dict):
                out.append({"visible": bool(item.get("visible")), "text": str(item.get("text") or "")})
        return out


def list_page_targets(config: BrowserConfig) -> list[dict[str, Any]]:
    targets = http_get_json(f"{config.endpoint}/json/list", timeout=config.http_timeout)
    if not isinstance(targets, list):
        return []
    return [t for t in targets if isinstance(t, dict) and t.get("type") == "page" and t.get("webSocketDebuggerUrl")]


def connect_session(config: BrowserConfig) -> BrowserSession:
    """Attach to the configured tab (or the first page target)."""
    try:
        targets = list_page_targets(config)
    except HttpClientError as exc:
        raise SessionUnavailableError(
            f"DevTools endpoint not reachable: {exc}", endpoint=config.endpoint, context="connect_session"
        ) from exc

    if config.tab_id:
        targets = [t for t in targets if t.get("id") == config.tab_id]
    if not targets:
        wanted = f"tab {config.tab_id}" if config.tab_id else "any page target"
        raise SessionUnavailableError(f"No {wanted} found", endpoint=config.endpoint, context="connect_session")

    target = targets[0]
    try:
        conn = CdpConnection(str(target["webSocketDebuggerUrl"]), timeout=config.cdp_timeout)
    except (OSError, websocket.WebSocketException) as exc:
        raise SessionUnavailableError(
            f"Cannot attach to tab {target.get('id')}: {exc}", endpoint=config.endpoint, context="connect_session"
        ) from exc

    session = BrowserSession(conn, tab_id=str(target.get("id") or ""), tab_url=str(target.get("url") or ""))
    with suppress(HttpClientError):
        session.enable_runtime()
    logger.info("attached to tab %s (%s)", session.tab_id, redact_url_brief(session.tab_url))
    return session


__all__ = ["BrowserSession", "CdpConnection", "connect_session", "list_page_targets"]
