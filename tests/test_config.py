"""Test config.defaults — environment overrides."""

from config import defaults as app_defaults
from config.defaults import AppDefaults, load_defaults_from_env
from core.exploration.models import ExplorationSettings


def test_defaults_without_environment(monkeypatch):
    for name in ("SERVER_PORT", "MQTT_ENABLED", "EXPLORE_MAX_SCREENS", "EXPLORE_IGNORE_ELEMENTS"):
        monkeypatch.delenv(name, raising=False)
    config = AppDefaults.from_env()
    assert config.SERVER_PORT == 8083
    assert config.MQTT_ENABLED is False
    assert config.EXPLORE_MAX_SCREENS == 20
    assert config.EXPLORE_IGNORE_ELEMENTS == ["android.widget.ImageView"]
    assert config.LOG_BUFFER_SIZE == 1000


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "9000")
    monkeypatch.setenv("MQTT_ENABLED", "yes")
    monkeypatch.setenv("EXPLORE_MAX_DEPTH", "4")
    monkeypatch.setenv("EXPLORE_IGNORE_ELEMENTS", "ImageView, ProgressBar ,")
    config = AppDefaults.from_env()
    assert config.SERVER_PORT == 9000
    assert config.MQTT_ENABLED is True
    assert config.EXPLORE_MAX_DEPTH == 4
    assert config.EXPLORE_IGNORE_ELEMENTS == ["ImageView", "ProgressBar"]


def test_empty_ignore_list(monkeypatch):
    monkeypatch.setenv("EXPLORE_IGNORE_ELEMENTS", "")
    assert AppDefaults.from_env().EXPLORE_IGNORE_ELEMENTS == []


def test_settings_follow_reloaded_defaults(monkeypatch):
    original = app_defaults.Defaults
    monkeypatch.setenv("EXPLORE_MAX_SCREENS", "42")
    try:
        load_defaults_from_env()
        assert ExplorationSettings().max_screens == 42
    finally:
        app_defaults.Defaults = original
