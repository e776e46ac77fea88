import pytest

from reviewkit.config import DEFAULT_PORT, Settings, load_settings
from reviewkit.errors import ConfigError


def test_defaults_without_file_or_environment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    settings = load_settings(env={})

    assert settings == Settings()
    assert settings.port == DEFAULT_PORT
    assert settings.default_branches == ("main", "master")


def test_environment_overrides_file(tmp_path):
    config = tmp_path / "reviewkit.yaml"
    config.write_text(
        "port: 4000\nwebhook_secret: from-file\ndisabled_rules:\n  - console_log\n  - long_line\n",
        encoding="utf-8",
    )

    settings = load_settings(
        config,
        env={"REVIEWKIT_PORT": "5000", "REVIEWKIT_LOG_LEVEL": "debug", "REVIEWKIT_UNRELATED": "x"},
    )

    assert settings.port == 5000
    assert settings.webhook_secret == "from-file"
    assert settings.disabled_rules == ("console_log", "long_line")
    assert settings.log_level == "DEBUG"


def test_config_path_from_environment(tmp_path):
    config = tmp_path / "custom.yaml"
    config.write_text("allow_unsigned_webhooks: true\n", encoding="utf-8")

    settings = load_settings(env={"REVIEWKIT_CONFIG": str(config), "REVIEWKIT_DEFAULT_BRANCHES": "trunk, release"})

    assert settings.allow_unsigned_webhooks is True
    assert settings.default_branches == ("trunk", "release")


def test_unknown_setting_in_file_is_rejected(tmp_path):
    config = tmp_path / "reviewkit.yaml"
    config.write_text("prot: 3000\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(config, env={})


def test_missing_explicit_file_is_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "absent.yaml", env={})


def test_invalid_port_is_rejected(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError):
        load_settings(env={"REVIEWKIT_PORT": "http"})


def test_invalid_yaml_is_rejected(tmp_path):
    config = tmp_path / "reviewkit.yaml"
    config.write_text("port: [3000\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(config, env={})


def test_webhook_policy_fails_closed():
    with pytest.raises(ConfigError):
        Settings().require_webhook_policy()

    Settings(webhook_secret="s").require_webhook_policy()
    Settings(allow_unsigned_webhooks=True).require_webhook_policy()
