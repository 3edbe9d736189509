from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from .timeouts import TimeoutPolicy, _env_float, _env_int, resolve_timeout_policy, resolve_timeout_profile
from .transition.detector import DetectorSettings
from .transition.fingerprint import LOADING_INDICATOR_SELECTORS


def _env_flag(env: Mapping[str, str], key: str) -> bool:
    raw = env.get(key)
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class BrowserConfig:
    """Where to find the already-running browser (Chrome remote debugging)."""

    cdp_host: str = "127.0.0.1"
    cdp_port: int = 9222
    http_timeout: float = 2.0
    cdp_timeout: float = 5.0
    tab_id: str | None = None

    @property
    def endpoint(self) -> str:
        return f"http://{self.cdp_host}:{self.cdp_port}"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> BrowserConfig:
        env_map = os.environ if env is None else env
        tab_id = (env_map.get("WEBCONNECT_TAB_ID") or "").strip() or None
        return cls(
            cdp_host=(env_map.get("WEBCONNECT_CDP_HOST") or "127.0.0.1").strip(),
            cdp_port=_env_int(env_map, "WEBCONNECT_CDP_PORT", fallback=9222),
            http_timeout=_env_float(env_map, "WEBCONNECT_HTTP_TIMEOUT", fallback=2.0),
            cdp_timeout=_env_float(env_map, "WEBCONNECT_CDP_TIMEOUT", fallback=5.0),
            tab_id=tab_id,
        )


@dataclass
class EngineConfig:
    """Everything the verifier needs, built once and passed explicitly."""

    timeouts: TimeoutPolicy = field(default_factory=TimeoutPolicy)
    detector: DetectorSettings = field(default_factory=DetectorSettings)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    profile: str = "default"
    log_sensitive: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, *, profile: str | None = None) -> EngineConfig:
        """Resolve profile + overrides. Raises ConfigurationError on inconsistent values."""
        env_map = os.environ if env is None else env
        resolved = resolve_timeout_profile(args_profile=profile, env=env_map)
        timeouts = resolve_timeout_policy(profile=resolved, env=env_map)

        defaults = DetectorSettings()
        raw_selectors = env_map.get("WEBCONNECT_LOADING_SELECTORS") or ""
        selectors = tuple(s.strip() for s in raw_selectors.split(",") if s.strip()) or LOADING_INDICATOR_SELECTORS
        detector = DetectorSettings.from_policy(
            timeouts,
            max_polling_interval=_env_float(
                env_map,
                "WEBCONNECT_MAX_POLLING_INTERVAL",
                fallback=max(timeouts.polling_interval, defaults.max_polling_interval),
            ),
            growth_factor=_env_float(env_map, "WEBCONNECT_POLLING_GROWTH_FACTOR", fallback=defaults.growth_factor),
            required_stable_checks=_env_int(
                env_map, "WEBCONNECT_STABLE_CHECKS", fallback=defaults.required_stable_checks
            ),
            loading_selectors=selectors,
        )

        return cls(
            timeouts=timeouts,
            detector=detector,
            browser=BrowserConfig.from_env(env_map),
            profile=resolved,
            log_sensitive=_env_flag(env_map, "WEBCONNECT_LOG_SENSITIVE"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "profile": self.profile,
            "timeouts": self.timeouts.to_dict(),
            "detector": self.detector.to_dict(),
            "browser": {"endpoint": self.browser.endpoint, "tab_id": self.browser.tab_id},
        }
