"""Tests for generation settings, engine settings and logging setup."""

import logging

import pytest
import structlog

from py_terrain.config.config import EngineSettings
from py_terrain.config.generation_settings import GenerationSettings, load_generation_settings
from py_terrain.config.logging_config import configure_logging
from py_terrain.errors import SettingsError


class TestGenerationSettings:
    """Test validation of a generation pass's settings."""

    def test_camel_and_snake_case(self):
        """Test that both key styles are accepted."""
        camel = load_generation_settings({"gridSize": 300, "seed": "s", "voronoi": {"numSites": 50}})
        snake = load_generation_settings({"grid_size": 300, "seed": "s", "voronoi": {"num_sites": 50}})

        assert camel == snake
        assert camel.voronoi.num_sites == 50
        assert camel.voronoi.poisson_radius is None

    def test_defaults(self):
        """Test the defaults of optional sections."""
        settings = load_generation_settings({"seed": 1})

        assert settings.grid_size == 600
        assert settings.voronoi.poisson_radius == 25.0
        assert settings.coastlines is None
        assert settings.lakes is None
        assert settings.rivers.num_rivers == 1
        assert settings.rivers.max_iterations == 1000
        assert settings.tributaries.max_tributary_length is None

    def test_passthrough(self):
        """Test that validated settings are returned as is."""
        settings = GenerationSettings(seed=3)

        assert load_generation_settings(settings) is settings

    def test_snapshot_round_trip(self):
        """Test that a snapshot validates back to equal settings."""
        settings = load_generation_settings({
            "seed": "x",
            "coastlines": {"direction": "random", "budget": 10},
            "lakes": {"budget": 5},
        })
        snapshot = settings.to_snapshot()

        assert snapshot["coastlines"]["direction"] == "RANDOM"
        assert "numLakes" in snapshot["lakes"]
        assert load_generation_settings(snapshot) == settings

    @pytest.mark.parametrize("data", [
        {},
        {"seed": 1, "coastlines": {"direction": "N"}},
        {"seed": 1, "lakes": {"numLakes": 2}},
        {"seed": 1, "coastlines": {"direction": "NE", "budget": 5}},
        {"seed": 1, "coastlines": {"budget": -1}},
        {"seed": 1, "voronoi": {"numSites": None, "poissonRadius": None}},
        {"seed": 1, "voronoi": {"numSites": 2}},
        {"seed": 1, "gridSize": 0},
        {"seed": 1, "unknownKey": True},
        {"seed": 1, "tributaries": {"maxTributaryLength": 1}},
        {"seed": 1, "gridSize": 40, "voronoi": {"poissonRadius": 30}},
        {"seed": 1, "gridSize": 40},
    ])
    def test_invalid(self, data):
        """Test that malformed settings raise a settings error."""
        with pytest.raises(SettingsError):
            load_generation_settings(data)

    def test_small_grid_with_uniform_sites(self):
        """Test that uniform sites fit any grid size."""
        settings = load_generation_settings({"seed": 1, "gridSize": 40, "voronoi": {"numSites": 10}})

        assert settings.voronoi.poisson_radius is None

    def test_settings_error_is_value_error(self):
        """Test that settings errors can be caught as value errors."""
        with pytest.raises(ValueError):
            load_generation_settings({"seed": 1, "gridSize": -5})


class TestEngineSettings:
    """Test environment driven engine settings."""

    def test_env_prefix(self, monkeypatch):
        """Test that variables with the engine prefix are read."""
        monkeypatch.setenv("TERRAIN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TERRAIN_OUTPUT_DIR", "/tmp/maps")

        engine = EngineSettings()

        assert engine.log_level == "DEBUG"
        assert engine.output_dir == "/tmp/maps"

    def test_defaults(self, monkeypatch):
        """Test the defaults without environment overrides."""
        for name in ("TERRAIN_LOG_LEVEL", "TERRAIN_LOG_FORMAT", "TERRAIN_OUTPUT_DIR"):
            monkeypatch.delenv(name, raising=False)

        engine = EngineSettings(_env_file=None)

        assert engine.log_level == "INFO"
        assert engine.log_format == "json"


class TestConfigureLogging:
    """Test structured logging setup."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    def test_level_applied(self):
        """Test that the configured level reaches the root logger."""
        configure_logging(EngineSettings(log_level="warning", log_format="console"))

        assert logging.getLogger().level == logging.WARNING

    def test_json_output(self, capsys):
        """Test that events are rendered as JSON lines."""
        configure_logging(EngineSettings(log_level="INFO", log_format="json"))
        structlog.get_logger("terrain-test").info("Map generated", cells=3)

        out = capsys.readouterr().out
        assert '"event": "Map generated"' in out
        assert '"cells": 3' in out
