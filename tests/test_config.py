"""Tests for environment-driven configuration."""

import pytest

from config import load_config

ENV_KEYS = [
    "DEBUG_MODE",
    "WEB_PORT",
    "SECRET_KEY",
    "GCLOUD_BINARY",
    "STORAGE_BUCKET_SUFFIX",
    "GCLOUD_COMMAND_TIMEOUT",
    "POLL_INTERVAL_SECONDS",
    "POLL_MAX_CONSECUTIVE_FAILURES",
    "OPERATIONS_LIST_LIMIT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = load_config()

    assert config["DEBUG_MODE"] is False
    assert config["WEB_PORT"] == 3000
    assert config["GCLOUD_BINARY"] == "gcloud"
    assert config["STORAGE_BUCKET_SUFFIX"] == "firebasestorage.app"
    assert config["GCLOUD_COMMAND_TIMEOUT"] == 0.0
    assert config["POLL_INTERVAL_SECONDS"] == 3.0
    assert config["POLL_MAX_CONSECUTIVE_FAILURES"] == 20
    assert config["OPERATIONS_LIST_LIMIT"] == 10
    assert len(config["SECRET_KEY"]) == 64


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEBUG_MODE", "True")
    monkeypatch.setenv("GCLOUD_BINARY", "/opt/google-cloud-sdk/bin/gcloud")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "1.5")
    monkeypatch.setenv("SECRET_KEY", "fixed")

    config = load_config()

    assert config["DEBUG_MODE"] is True
    assert config["GCLOUD_BINARY"] == "/opt/google-cloud-sdk/bin/gcloud"
    assert config["POLL_INTERVAL_SECONDS"] == 1.5
    assert config["SECRET_KEY"] == "fixed"


@pytest.mark.parametrize(
    "key, raw, expected",
    [
        ("POLL_INTERVAL_SECONDS", "fast", 3.0),
        ("POLL_INTERVAL_SECONDS", "0", 3.0),
        ("POLL_MAX_CONSECUTIVE_FAILURES", "-1", 20),
        ("WEB_PORT", "http", 3000),
    ],
)
def test_invalid_values_fall_back_to_default(monkeypatch, key, raw, expected):
    monkeypatch.setenv(key, raw)

    assert load_config()[key] == expected
