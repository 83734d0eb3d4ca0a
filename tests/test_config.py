"""Settings defaults, environment overrides and logging setup."""

from __future__ import annotations

import importlib
import logging

import pytest
import structlog

from jamroom.config import Settings
from jamroom.logging_setup import configure_logging


def test_version() -> None:
    from jamroom import __version__

    assert __version__ == "0.1.0"


def test_settings_defaults() -> None:
    s = Settings()
    assert s.sample_rate == 44100
    assert s.default_volume == 80
    assert s.default_master_volume == 80
    assert s.export_prefix == "soundboard-mix"
    assert s.resample is True


def test_settings_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JAMROOM_API_BASE_URL", "https://jam.example")
    monkeypatch.setenv("JAMROOM_SAMPLE_RATE", "48000")
    s = Settings()
    assert s.api_base_url == "https://jam.example"
    assert s.sample_rate == 48000


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def test_configure_logging_reads_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert configure_logging() == logging.DEBUG


def test_configure_logging_defaults_to_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setattr("jamroom.logging_setup.settings.log_level", "error")
    assert configure_logging() == logging.ERROR


def test_configure_logging_explicit_level_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert configure_logging("warning") == logging.WARNING


def test_configure_logging_falls_back_on_bad_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert configure_logging() == logging.INFO


@pytest.mark.parametrize(
    "module",
    ["jamroom.hands.wav", "jamroom.hands.mixdown", "jamroom.console.tracks", "jamroom.console.session"],
)
def test_layers_import_as_namespace_packages(module: str) -> None:
    assert importlib.import_module(module).__name__ == module
