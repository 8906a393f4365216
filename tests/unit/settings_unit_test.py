import pytest
from pydantic import ValidationError

from flashparse.config import AppConfig, load_settings, settings
from flashparse.config.defaults import DEFAULT_CONFIG


def test_settings_singleton_is_appconfig_instance():
    assert isinstance(settings, AppConfig)


def test_dict_like_access():
    # attribute, upper and lower case keys
    assert settings.max_regex_length == settings["MAX_REGEX_LENGTH"]
    assert settings["max_regex_length"] == settings.get("Max_Regex_Length")
    # .get fallback
    assert settings.get("non_existing_key", 42) == 42
    assert "TAIL_WINDOW" in settings


def test_immutability_of_singleton():
    with pytest.raises(ValidationError):
        settings.max_regex_length = 5


def test_defaults_loaded():
    cfg = load_settings()
    assert cfg.max_complexity_score == DEFAULT_CONFIG["MAX_COMPLEXITY_SCORE"]
    assert cfg.allow_lookahead is False
    assert cfg.tail_coverage_threshold == 0.95
    assert cfg.min_global_confidence == 0.4


def test_env_override(monkeypatch):
    monkeypatch.setenv("FLASHPARSE_DYNAMIC_TIMEOUT_MS", "250")
    monkeypatch.setenv("FLASHPARSE_ALLOW_LOOKAHEAD", "true")
    monkeypatch.setenv("FLASHPARSE_DYNAMIC_ATTACK_LENGTHS", "[16, 64]")
    cfg = load_settings()
    assert cfg.dynamic_timeout_ms == 250
    assert cfg.allow_lookahead is True
    assert cfg.dynamic_attack_lengths == [16, 64]


def test_runtime_overrides_win_over_env(monkeypatch):
    monkeypatch.setenv("FLASHPARSE_MAX_GROUPS", "3")
    cfg = load_settings({"MAX_GROUPS": 7})
    assert cfg.max_groups == 7


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        load_settings({"min_global_confidence": 2})
    with pytest.raises(ValidationError):
        load_settings({"dynamic_timeout_ms": 0})


def test_with_overrides_returns_copy():
    cfg = load_settings()
    strict = cfg.with_overrides(max_regex_length=10)
    assert strict.max_regex_length == 10
    assert cfg.max_regex_length == DEFAULT_CONFIG["MAX_REGEX_LENGTH"]


def test_extra_keys_are_allowed():
    cfg = load_settings({"custom_option": "x"})
    assert cfg.get("CUSTOM_OPTION") == "x"
