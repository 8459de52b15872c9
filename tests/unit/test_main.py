"""Tests for the server entrypoint's flag handling."""

import pytest

from feedenrich.main import build_parser, settings_from_args


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv("FEEDENRICH_PORT", "8081")
    monkeypatch.setenv("FEEDENRICH_HOST", "10.0.0.1")

    settings = settings_from_args(["--port", "9000", "--log-level", "debug"])

    assert settings.port == 9000
    assert settings.log_level == "DEBUG"
    assert settings.host == "10.0.0.1"


def test_no_flags_keeps_environment(monkeypatch):
    monkeypatch.setenv("FEEDENRICH_JSON_LOGS", "true")
    settings = settings_from_args([])
    assert settings.json_logs is True


def test_unknown_log_level_is_refused():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--log-level", "chatty"])
