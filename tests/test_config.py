import json
import logging

import pytest

from engine import config
from engine.config import WorldSettings


@pytest.fixture(autouse=True)
def _restore_default_config():
    yield
    config.load()


def test_defaults_come_from_bundled_file():
    config.load()
    settings = WorldSettings.from_config()
    assert settings.seed == 0xDEADBEEF
    assert settings.chunk_size == 32
    assert config.get("noise.layers") == 3
    assert config.get("noise.missing", "fallback") == "fallback"


def test_load_alternate_file_and_override(tmp_path):
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"world": {"seed": 42, "chunk_size": 8}, "compute": {"workers": 2}}))
    config.load(path)
    settings = WorldSettings.from_config(spawn_radius=0)
    assert settings.seed == 42
    assert settings.chunk_size == 8
    assert settings.workers == 2
    assert settings.spawn_radius == 0
    assert settings.noise_layers == WorldSettings().noise_layers


def test_malformed_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with caplog.at_level(logging.WARNING, logger="engine.config"):
        data = config.load(path)
    assert data == {}
    assert "failed to read config" in caplog.text
    assert WorldSettings.from_config() == WorldSettings()


def test_missing_file_is_empty(tmp_path):
    assert config.load(tmp_path / "absent.json") == {}


def test_invalid_settings_are_rejected():
    with pytest.raises(ValueError):
        WorldSettings(chunk_size=0)
    with pytest.raises(ValueError):
        WorldSettings(workers=0)
    with pytest.raises(ValueError):
        WorldSettings(noise_layers=0)
