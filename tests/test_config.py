"""Tests for the Config class."""

import logging

import pytest

from forge_request.config import Config, ConfigValue
from forge_request.exceptions import ConfigError
from forge_request.logging_utils import configure_logging


def test_config_defaults(config):
    """Test that default configuration values are set correctly."""
    assert config.log_level == "INFO"
    assert config.parsers == {"json": True, "xml": True, "form": True}
    assert config.form_max_depth == 64


def test_config_env_loading(monkeypatch):
    """Test that environment variables are loaded correctly."""
    monkeypatch.setenv("FORGE_REQUEST_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("FORGE_REQUEST_PARSERS_XML", "false")
    monkeypatch.setenv("FORGE_REQUEST_FORM_MAX_DEPTH", "8")

    config = Config()

    assert config.log_level == "DEBUG"
    assert config.parsers["xml"] is False
    assert config.form_max_depth == 8


def test_config_env_prefix(monkeypatch):
    monkeypatch.setenv("APP_FORM_MAX_DEPTH", "3")

    assert Config(env_prefix="APP_").form_max_depth == 3


def test_config_env_invalid_integer(monkeypatch):
    monkeypatch.setenv("FORGE_REQUEST_FORM_MAX_DEPTH", "deep")

    with pytest.raises(ConfigError):
        Config()


def test_config_file_loading(config, tmp_path):
    """Test that configuration files are loaded correctly."""
    path = tmp_path / "forge_request.yaml"
    path.write_text(
        "log_level: WARNING\n"
        "parsers:\n"
        "  json: false\n"
        "form:\n"
        "  max_depth: 4\n"
        "unknown: ignored\n"
    )

    config.load_file(path)

    assert config.log_level == "WARNING"
    assert config.parsers == {"json": False, "xml": True, "form": True}
    assert config.form_max_depth == 4
    assert config.get("unknown") is None


def test_config_file_rejected_as_a_whole(config, tmp_path):
    """Test that an invalid file leaves every value unchanged."""
    path = tmp_path / "forge_request.yaml"
    path.write_text(
        "log_level: DEBUG\n"
        "form:\n"
        "  max_depth: 0\n"
    )

    with pytest.raises(ConfigError):
        config.load_file(path)

    assert config.form_max_depth == 64
    assert config.log_level == "INFO"

    config.set("form__max_depth", 8)
    assert config.form_max_depth == 8


def test_config_file_missing(config, tmp_path):
    with pytest.raises(FileNotFoundError):
        config.load_file(tmp_path / "missing.yaml")


@pytest.mark.parametrize("content", ["- a\n- b\n", "key: [unclosed\n"])
def test_config_file_invalid(config, tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ConfigError):
        config.load_file(path)


def test_config_set_and_validation(config):
    config.set("form__max_depth", 10)
    assert config.get("form__max_depth") == 10

    with pytest.raises(ConfigError):
        config.set("form__max_depth", 0)
    with pytest.raises(ConfigError):
        config.set("form__max_depth", "ten")
    with pytest.raises(ConfigError):
        config.set("log_level", "LOUD")
    with pytest.raises(ConfigError):
        config.set("no_such_key", 1)


def test_config_to_dict(config):
    assert config.to_dict() == {
        "log_level": "INFO",
        "parsers": {"json": True, "xml": True, "form": True},
        "form": {"max_depth": 64},
    }


def test_config_value_required():
    with pytest.raises(ConfigError):
        ConfigValue(None, str).validate()
    ConfigValue(None, str, False).validate()


def test_configure_logging(config):
    config.set("log_level", "DEBUG")
    logger = configure_logging(config)

    try:
        assert logger.name == "forge_request"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        configure_logging(config)
        assert len(logger.handlers) == 1
    finally:
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
