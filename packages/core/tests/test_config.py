"""Tests for configuration loading."""

import pytest

from packbot_core.config import _ENV_VARS, load_config, missing_app_settings, trigger_phrase, unescape_private_key


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_var in list(_ENV_VARS.values()) + ["GITHUB_TOKEN"]:
        monkeypatch.delenv(env_var, raising=False)


def test_defaults_applied_when_environment_is_empty():
    config = load_config()
    assert config["bot_name"] == "discord-js-bot"
    assert config["dispatch_branch"] == "main"
    assert config["record_ttl"] == 3600
    assert config["dispatch_grace_seconds"] == 5
    assert config["run_lookup_limit"] == 5
    assert config["store"] == "memory"
    assert config["app_id"] is None


def test_env_vars_loaded(monkeypatch):
    monkeypatch.setenv("APP_ID", "12345")
    monkeypatch.setenv("WEBHOOK_SECRET", "s3cret")
    monkeypatch.setenv("PACKBOT_TARGET_REPO", "owner/repo")
    monkeypatch.setenv("PACKBOT_WORKFLOW_NAME", "Pack")
    monkeypatch.setenv("PACKBOT_STORE", "sqlite")
    config = load_config()
    assert config["app_id"] == "12345"
    assert config["webhook_secret"] == "s3cret"
    assert config["target_repo"] == "owner/repo"
    assert config["workflow_name"] == "Pack"
    assert config["store"] == "sqlite"


def test_integer_settings_are_parsed(monkeypatch):
    monkeypatch.setenv("PACKBOT_RECORD_TTL", "600")
    monkeypatch.setenv("PACKBOT_DISPATCH_GRACE", "2")
    config = load_config()
    assert config["record_ttl"] == 600
    assert config["dispatch_grace_seconds"] == 2


def test_invalid_integer_names_the_variable(monkeypatch):
    monkeypatch.setenv("PACKBOT_RECORD_TTL", "an hour")
    with pytest.raises(ValueError, match="PACKBOT_RECORD_TTL"):
        load_config()


def test_private_key_is_unescaped(monkeypatch):
    monkeypatch.setenv("PRIVATE_KEY", "-----BEGIN KEY-----\\nabc\\n-----END KEY-----")
    config = load_config()
    assert config["private_key"] == "-----BEGIN KEY-----\nabc\n-----END KEY-----"


def test_unescape_leaves_real_newlines_alone():
    assert unescape_private_key("a\nb") == "a\nb"


def test_overrides_win_over_environment(monkeypatch):
    monkeypatch.setenv("PACKBOT_LOG_LEVEL", "WARNING")
    config = load_config(overrides={"log_level": "DEBUG"})
    assert config["log_level"] == "DEBUG"


def test_none_overrides_ignored(monkeypatch):
    monkeypatch.setenv("PACKBOT_LOG_LEVEL", "WARNING")
    config = load_config(overrides={"log_level": None})
    assert config["log_level"] == "WARNING"


def test_gist_token_falls_back_to_github_token(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    assert load_config()["gist_token"] == "gh-token"


def test_explicit_gist_token_wins(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("PACKBOT_GIST_TOKEN", "gist-token")
    assert load_config()["gist_token"] == "gist-token"


def test_missing_app_settings(monkeypatch):
    monkeypatch.setenv("APP_ID", "12345")
    assert missing_app_settings(load_config()) == ["PRIVATE_KEY", "WEBHOOK_SECRET"]


def test_no_missing_app_settings_when_all_set(monkeypatch):
    monkeypatch.setenv("APP_ID", "12345")
    monkeypatch.setenv("PRIVATE_KEY", "pem")
    monkeypatch.setenv("WEBHOOK_SECRET", "s3cret")
    assert missing_app_settings(load_config()) == []


def test_trigger_phrase_uses_bot_name(monkeypatch):
    monkeypatch.setenv("PACKBOT_BOT_NAME", "my-bot")
    assert trigger_phrase(load_config()) == "@my-bot pack this"


def test_configs_are_independent():
    config_a = load_config()
    config_b = load_config()
    config_a["record_ttl"] = 1
    assert config_b["record_ttl"] == 3600
