from __future__ import annotations

import pytest


def test_default_policy_is_valid() -> None:
    from launchers.webconnect.timeouts import TimeoutPolicy

    policy = TimeoutPolicy()
    assert policy.internal_timeout == 15.0
    assert policy.external_timeout == 20.0
    assert policy.initial_delay == 0.1
    assert policy.quick_error_timeout == 2.0
    assert policy.polling_interval == 0.1
    assert policy.max_time_per_method == 3.0
    assert policy.min_time_per_method == 1.0


def test_external_not_greater_than_internal_names_both_fields() -> None:
    from launchers.webconnect.exceptions import ConfigurationError
    from launchers.webconnect.timeouts import TimeoutPolicy

    with pytest.raises(ConfigurationError) as excinfo:
        TimeoutPolicy(internal_timeout=20.0, external_timeout=20.0)

    assert excinfo.value.parameter_names == ("external_timeout", "internal_timeout")
    assert "external_timeout" in str(excinfo.value)
    assert "internal_timeout" in str(excinfo.value)


def test_each_ordering_violation_is_rejected() -> None:
    from launchers.webconnect.exceptions import ConfigurationError
    from launchers.webconnect.timeouts import TimeoutPolicy

    cases = [
        ({"initial_delay": 15.0}, ("initial_delay", "internal_timeout")),
        ({"min_time_per_method": 3.0}, ("min_time_per_method", "max_time_per_method")),
        ({"polling_interval": 16.0}, ("polling_interval", "internal_timeout")),
    ]
    for kwargs, fields in cases:
        with pytest.raises(ConfigurationError) as excinfo:
            TimeoutPolicy(**kwargs)
        assert excinfo.value.parameter_names == fields
        assert excinfo.value.error_code == "CONFIG_001"


def test_negative_duration_is_rejected() -> None:
    from launchers.webconnect.exceptions import ConfigurationError
    from launchers.webconnect.timeouts import TimeoutPolicy

    with pytest.raises(ConfigurationError):
        TimeoutPolicy(quick_error_timeout=-1.0)


def test_time_per_method_is_clamped() -> None:
    from launchers.webconnect.timeouts import TimeoutPolicy

    policy = TimeoutPolicy()
    assert policy.time_per_method(8.0) == 2.0
    assert policy.time_per_method(100.0) == 3.0
    assert policy.time_per_method(1.0) == 1.0
    assert policy.time_per_method(-5.0) == 1.0
    assert policy.time_per_method(5.0, method_count=2) == 2.5


def test_resolve_policy_applies_env_overrides() -> None:
    from launchers.webconnect.timeouts import resolve_timeout_policy

    env = {
        "WEBCONNECT_INTERNAL_TIMEOUT": "30",
        "WEBCONNECT_EXTERNAL_TIMEOUT": "45",
        "WEBCONNECT_POLLING_INTERVAL": "not-a-number",
    }
    policy = resolve_timeout_policy(profile="default", env=env)
    assert policy.internal_timeout == 30.0
    assert policy.external_timeout == 45.0
    # Unparseable values fall back to the profile default.
    assert policy.polling_interval == 0.1


def test_resolve_policy_rejects_inconsistent_env() -> None:
    from launchers.webconnect.exceptions import ConfigurationError
    from launchers.webconnect.timeouts import resolve_timeout_policy

    with pytest.raises(ConfigurationError):
        resolve_timeout_policy(profile="default", env={"WEBCONNECT_EXTERNAL_TIMEOUT": "5"})


def test_profile_resolution() -> None:
    from launchers.webconnect.timeouts import resolve_timeout_policy, resolve_timeout_profile

    assert resolve_timeout_profile(env={}) == "default"
    assert resolve_timeout_profile(env={"WEBCONNECT_TIMEOUT_PROFILE": "SLOW"}) == "slow"
    assert resolve_timeout_profile(args_profile="fast", env={"WEBCONNECT_TIMEOUT_PROFILE": "slow"}) == "fast"
    assert resolve_timeout_profile(args_profile="bogus", env={}) == "default"

    slow = resolve_timeout_policy(profile="slow", env={})
    fast = resolve_timeout_policy(profile="fast", env={})
    assert fast.internal_timeout < slow.internal_timeout
    assert slow.external_timeout > slow.internal_timeout
