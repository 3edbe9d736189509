"""Cascading timeout policy for login verification.

Nesting (outermost first):

    external_timeout   hard envelope around the whole verification
      internal_timeout   budget for the transition detector
        quick_error_timeout   early error-banner scan
        polling_interval      first poll period
        min/max_time_per_method   per-strategy allocation

The policy validates itself at construction, so an invalid policy never exists.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .exceptions import ConfigurationError


def _fmt(seconds: float) -> str:
    return f"{seconds:g}s"


@dataclass(frozen=True)
class TimeoutPolicy:
    internal_timeout: float = 15.0
    external_timeout: float = 20.0
    initial_delay: float = 0.1
    quick_error_timeout: float = 2.0
    polling_interval: float = 0.1
    max_time_per_method: float = 3.0
    min_time_per_method: float = 1.0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError naming both fields of the first violated ordering."""
        for name in (
            "internal_timeout",
            "external_timeout",
            "initial_delay",
            "quick_error_timeout",
            "polling_interval",
            "max_time_per_method",
            "min_time_per_method",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(f"{name} ({_fmt(value)}) must not be negative", parameter_names=(name,))

        if self.external_timeout <= self.internal_timeout:
            raise ConfigurationError(
                f"external_timeout ({_fmt(self.external_timeout)}) must be greater than "
                f"internal_timeout ({_fmt(self.internal_timeout)})",
                parameter_names=("external_timeout", "internal_timeout"),
            )
        if self.initial_delay >= self.internal_timeout:
            raise ConfigurationError(
                f"initial_delay ({_fmt(self.initial_delay)}) must be less than "
                f"internal_timeout ({_fmt(self.internal_timeout)})",
                parameter_names=("initial_delay", "internal_timeout"),
            )
        if self.min_time_per_method >= self.max_time_per_method:
            raise ConfigurationError(
                f"min_time_per_method ({_fmt(self.min_time_per_method)}) must be less than "
                f"max_time_per_method ({_fmt(self.max_time_per_method)})",
                parameter_names=("min_time_per_method", "max_time_per_method"),
            )
        if self.polling_interval >= self.internal_timeout:
            raise ConfigurationError(
                f"polling_interval ({_fmt(self.polling_interval)}) must be less than "
                f"internal_timeout ({_fmt(self.internal_timeout)})",
                parameter_names=("polling_interval", "internal_timeout"),
            )

    def time_per_method(self, remaining: float, method_count: int = 4) -> float:
        """Share of the remaining budget for one verification strategy, clamped to [min, max]."""
        count = max(1, int(method_count))
        share = max(0.0, float(remaining)) / count
        return max(self.min_time_per_method, min(self.max_time_per_method, share))

    def to_dict(self) -> dict[str, float]:
        return {
            "internal_timeout": self.internal_timeout,
            "external_timeout": self.external_timeout,
            "initial_delay": self.initial_delay,
            "quick_error_timeout": self.quick_error_timeout,
            "polling_interval": self.polling_interval,
            "max_time_per_method": self.max_time_per_method,
            "min_time_per_method": self.min_time_per_method,
        }


_PROFILE_DEFAULTS: dict[str, TimeoutPolicy] = {
    "fast": TimeoutPolicy(
        internal_timeout=8.0,
        external_timeout=10.0,
        initial_delay=0.05,
        quick_error_timeout=1.0,
        polling_interval=0.1,
        max_time_per_method=2.0,
        min_time_per_method=0.5,
    ),
    "default": TimeoutPolicy(),
    "slow": TimeoutPolicy(
        internal_timeout=40.0,
        external_timeout=50.0,
        initial_delay=0.5,
        quick_error_timeout=4.0,
        polling_interval=0.25,
        max_time_per_method=8.0,
        min_time_per_method=2.0,
    ),
}


def _coerce_profile(raw: str | None) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return "default"
    value = raw.strip().lower()
    return value if value in _PROFILE_DEFAULTS else "default"


def _env_float(env: Mapping[str, str], *keys: str, fallback: float) -> float:
    for key in keys:
        raw = env.get(key)
        if raw is None:
            continue
        try:
            return float(raw)
        except Exception:
            continue
    return float(fallback)


def _env_int(env: Mapping[str, str], *keys: str, fallback: int) -> int:
    for key in keys:
        raw = env.get(key)
        if raw is None:
            continue
        try:
            return int(raw)
        except Exception:
            continue
    return int(fallback)


def resolve_timeout_profile(*, args_profile: str | None = None, env: Mapping[str, str] | None = None) -> str:
    env_map = os.environ if env is None else env
    if isinstance(args_profile, str) and args_profile.strip():
        return _coerce_profile(args_profile)
    return _coerce_profile(env_map.get("WEBCONNECT_TIMEOUT_PROFILE"))


def resolve_timeout_policy(*, profile: str = "default", env: Mapping[str, str] | None = None) -> TimeoutPolicy:
    """Build a validated policy from a named profile plus WEBCONNECT_* overrides."""
    env_map = os.environ if env is None else env
    base = _PROFILE_DEFAULTS.get(profile, _PROFILE_DEFAULTS["default"])

    return TimeoutPolicy(
        internal_timeout=_env_float(env_map, "WEBCONNECT_INTERNAL_TIMEOUT", fallback=base.internal_timeout),
        external_timeout=_env_float(env_map, "WEBCONNECT_EXTERNAL_TIMEOUT", fallback=base.external_timeout),
        initial_delay=_env_float(env_map, "WEBCONNECT_INITIAL_DELAY", fallback=base.initial_delay),
        quick_error_timeout=_env_float(env_map, "WEBCONNECT_QUICK_ERROR_TIMEOUT", fallback=base.quick_error_timeout),
        polling_interval=_env_float(env_map, "WEBCONNECT_POLLING_INTERVAL", fallback=base.polling_interval),
        max_time_per_method=_env_float(env_map, "WEBCONNECT_MAX_TIME_PER_METHOD", fallback=base.max_time_per_method),
        min_time_per_method=_env_float(env_map, "WEBCONNECT_MIN_TIME_PER_METHOD", fallback=base.min_time_per_method),
    )


__all__ = ["TimeoutPolicy", "resolve_timeout_policy", "resolve_timeout_profile"]
