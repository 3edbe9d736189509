"""
webconnect-watch: wait for a login page transition in a running Chrome.

Attach to the tab, capture the baseline, then (after the operator or another
process submits the form) report whether the page transitioned and settled.
Prints one JSON report on stdout.

Exit codes: 0 transitioned, 1 verification failed, 2 configuration/attach error.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
from typing import Any

from .cancellation import CancellationSignal
from .config import EngineConfig
from .exceptions import ConfigurationError, SessionUnavailableError
from .session import connect_session
from .verification import TransitionVerifier

logger = logging.getLogger("webconnect")


def configure_logging(*, debug: bool = False) -> None:
    level_name = "DEBUG" if debug else (os.environ.get("WEBCONNECT_LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def _write_report(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    sys.stdout.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="webconnect-watch", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--profile", choices=["fast", "default", "slow"], help="timeout profile")
    parser.add_argument("--tab", dest="tab_id", help="DevTools target id (default: first page)")
    parser.add_argument("--port", type=int, help="remote debugging port")
    parser.add_argument("--fast", action="store_true", help="URL/title change only, no stabilization")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(debug=args.debug)

    try:
        config = EngineConfig.from_env(profile=args.profile)
    except ConfigurationError as exc:
        logger.error("invalid configuration: %s", exc)
        _write_report({"ok": False, "failure": exc.to_dict()})
        return 2
    if args.port:
        config.browser.cdp_port = args.port
    if args.tab_id:
        config.browser.tab_id = args.tab_id

    try:
        session = connect_session(config.browser)
    except SessionUnavailableError as exc:
        logger.error("%s", exc)
        _write_report({"ok": False, "failure": exc.to_dict()})
        return 2

    cancel = CancellationSignal()
    previous = signal.getsignal(signal.SIGINT)

    def _on_sigint(_signum, _frame) -> None:  # noqa: ANN001
        logger.info("interrupt received, cancelling")
        cancel.cancel()

    signal.signal(signal.SIGINT, _on_sigint)
    try:
        with session:
            verifier = TransitionVerifier(session, config)
            logger.info("baseline captured for tab %s; waiting for transition", session.tab_id)
            report = verifier.attempt(cancel, fast=args.fast)
    finally:
        signal.signal(signal.SIGINT, previous)

    payload = report.to_dict()
    payload["config"] = config.to_dict()
    _write_report(payload)
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
