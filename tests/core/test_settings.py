import json
import logging

from pianoscribe.core.settings import DEFAULT_SETTINGS, Settings


def test_defaults():
    settings = Settings.defaults()
    assert settings.fusion_window == 1.0
    assert settings.resize_handle_width == 8
    assert settings.axis_lock_modifier == "alt"
    assert settings.zoom_modifier == "ctrl"


def test_load_creates_file(tmp_path):
    path = tmp_path / "cfg" / "settings.json"
    settings = Settings.load(path)
    assert path.exists()
    assert json.loads(path.read_text()) == DEFAULT_SETTINGS
    assert settings.values == DEFAULT_SETTINGS


def test_load_merges_over_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"piano_roll": {"resize_handle_width": 12}, "unknown": {"x": 1}}))
    settings = Settings.load(path)
    assert settings.resize_handle_width == 12
    assert settings.axis_lock_modifier == "alt"
    assert settings.fusion_window == 1.0
    assert "unknown" not in settings.values


def test_load_broken_file_falls_back(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    with caplog.at_level(logging.WARNING, logger="pianoscribe.core.settings"):
        settings = Settings.load(path)
    assert settings.values == DEFAULT_SETTINGS
    assert "Failed to load settings" in caplog.text


def test_invalid_modifier_falls_back(caplog):
    settings = Settings(values={"piano_roll": {"axis_lock_modifier": "hyper"}})
    with caplog.at_level(logging.WARNING, logger="pianoscribe.core.settings"):
        assert settings.axis_lock_modifier == "alt"
    assert "hyper" in caplog.text


def test_save_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    settings = Settings(path)
    settings.set("history", "fusion_window", 2.5)
    settings.save()
    assert Settings.load(path).fusion_window == 2.5


def test_defaults_not_shared():
    a = Settings.defaults()
    a.set("piano_roll", "zoom_modifier", "shift")
    assert Settings.defaults().zoom_modifier == "ctrl"
    assert DEFAULT_SETTINGS["piano_roll"]["zoom_modifier"] == "ctrl"
