from __future__ import annotations

import pytest


def test_engine_config_from_empty_env_uses_defaults() -> None:
    from launchers.webconnect.config import EngineConfig
    from launchers.webconnect.transition import LOADING_INDICATOR_SELECTORS

    config = EngineConfig.from_env({})
    assert config.profile == "default"
    assert config.timeouts.internal_timeout == 15.0
    assert config.detector.initial_delay == config.timeouts.initial_delay
    assert config.detector.initial_polling_interval == config.timeouts.polling_interval
    assert config.detector.max_polling_interval == 0.5
    assert config.detector.growth_factor == 1.5
    assert config.detector.required_stable_checks == 2
    assert config.detector.loading_selectors == LOADING_INDICATOR_SELECTORS
    assert config.browser.endpoint == "http://127.0.0.1:9222"
    assert config.log_sensitive is False


def test_engine_config_reads_detector_and_browser_overrides() -> None:
    from launchers.webconnect.config import EngineConfig

    env = {
        "WEBCONNECT_STABLE_CHECKS": "3",
        "WEBCONNECT_POLLING_GROWTH_FACTOR": "2",
        "WEBCONNECT_MAX_POLLING_INTERVAL": "1.0",
        "WEBCONNECT_LOADING_SELECTORS": ".busy, #overlay ,",
        "WEBCONNECT_CDP_PORT": "9333",
        "WEBCONNECT_TAB_ID": "ABC",
        "WEBCONNECT_LOG_SENSITIVE": "yes",
    }
    config = EngineConfig.from_env(env, profile="slow")

    assert config.profile == "slow"
    assert config.detector.required_stable_checks == 3
    assert config.detector.growth_factor == 2.0
    assert config.detector.max_polling_interval == 1.0
    assert config.detector.loading_selectors == (".busy", "#overlay")
    assert config.browser.cdp_port == 9333
    assert config.browser.tab_id == "ABC"
    assert config.log_sensitive is True

    summary = config.to_dict()
    assert summary["browser"]["endpoint"] == "http://127.0.0.1:9333"
    assert summary["timeouts"]["internal_timeout"] == config.timeouts.internal_timeout


def test_engine_config_rejects_invalid_detector_settings() -> None:
    from launchers.webconnect.config import EngineConfig
    from launchers.webconnect.exceptions import ConfigurationError

    with pytest.raises(ConfigurationError) as excinfo:
        EngineConfig.from_env({"WEBCONNECT_POLLING_GROWTH_FACTOR": "0.5"})
    assert excinfo.value.parameter_names == ("growth_factor",)

    with pytest.raises(ConfigurationError):
        EngineConfig.from_env({"WEBCONNECT_STABLE_CHECKS": "0"})

    with pytest.raises(ConfigurationError) as excinfo:
        EngineConfig.from_env({"WEBCONNECT_MAX_POLLING_INTERVAL": "0.05"})
    assert excinfo.value.parameter_names == ("initial_polling_interval", "max_polling_interval")


def test_polling_interval_override_above_default_cap_is_accepted() -> None:
    from launchers.webconnect.config import EngineConfig

    config = EngineConfig.from_env({"WEBCONNECT_POLLING_INTERVAL": "0.8"}, profile="slow")

    assert config.timeouts.polling_interval == 0.8
    assert config.detector.initial_polling_interval == 0.8
    assert config.detector.max_polling_interval == 0.8
