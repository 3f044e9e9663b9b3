"""Tests for render configuration, the error hierarchy and logging setup."""

import logging

import pytest

from prismatic.core.config import RenderConfig
from prismatic.core.tiles import Tile
from prismatic.errors import ConfigurationError, PrismaticError, RenderError, TileFailedError
from prismatic.logging_config import setup_logging


class TestRenderConfig:
    """Tests for RenderConfig validation and serialization."""

    def test_defaults(self):
        """Test the default configuration."""
        config = RenderConfig()
        assert config.pixel_samples == 16
        assert config.spectrum_bins == 50
        assert config.tile_size == 32
        assert config.workers == 1
        assert config.russian_roulette_depth is None
        assert config.wavelength_range == (380.0, 780.0)

    def test_paths_per_pixel(self):
        """Test pixel_samples * spectrum_bins * spectrum_samples."""
        config = RenderConfig(pixel_samples=200, spectrum_samples=1, spectrum_bins=50)
        assert config.paths_per_pixel == 10000

    @pytest.mark.parametrize(
        "field, value",
        [
            ("pixel_samples", 0),
            ("spectrum_samples", 0),
            ("spectrum_bins", 0),
            ("tile_size", 0),
            ("workers", 0),
            ("pixel_samples", 2.5),
            ("workers", True),
        ],
    )
    def test_rejects_non_positive_counts(self, field, value):
        """Test that counts must be integers >= 1."""
        with pytest.raises(ConfigurationError, match=field):
            RenderConfig(**{field: value})

    def test_zero_bounces_allowed(self):
        """Test that a bounce budget of zero is valid (direct emission only)."""
        assert RenderConfig(bounces=0).bounces == 0

    def test_rejects_negative_bounces(self):
        """Test that the bounce budget cannot be negative."""
        with pytest.raises(ConfigurationError, match="bounces"):
            RenderConfig(bounces=-1)

    def test_rejects_bad_roulette_depth(self):
        """Test that the Russian roulette depth must be None or >= 0."""
        with pytest.raises(ConfigurationError, match="russian_roulette_depth"):
            RenderConfig(russian_roulette_depth=-2)

    def test_rejects_inverted_range(self):
        """Test that the wavelength range must be increasing."""
        with pytest.raises(ConfigurationError, match="wavelength_range"):
            RenderConfig(wavelength_range=(700.0, 400.0))

    def test_configuration_error_is_value_error(self):
        """Test that configuration errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            RenderConfig(tile_size=-4)

    def test_dict_round_trip(self):
        """Test that to_dict / from_dict preserve every field."""
        config = RenderConfig(pixel_samples=4, bounces=256, workers=3, russian_roulette_depth=5)
        assert RenderConfig.from_dict(config.to_dict()) == config

    def test_from_dict_rejects_unknown_keys(self):
        """Test that typos in settings are reported."""
        with pytest.raises(ConfigurationError, match="Unknown render settings: samples"):
            RenderConfig.from_dict({"samples": 10})

    def test_frozen(self):
        """Test that the configuration cannot change during a render."""
        config = RenderConfig()
        with pytest.raises(AttributeError):
            config.bounces = 3


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_tile_failed_error_carries_coordinates(self):
        """Test that TileFailedError names the tile and keeps the cause."""
        tile = Tile(index=5, x0=32, y0=64, x1=64, y1=80)
        cause = RuntimeError("boom")
        error = TileFailedError(tile, cause)

        assert (error.x0, error.y0, error.x1, error.y1) == (32, 64, 64, 80)
        assert error.cause is cause
        assert "tile 5 at x=[32, 64) y=[64, 80)" in str(error)
        assert isinstance(error, RenderError)
        assert isinstance(error, PrismaticError)
        assert isinstance(error, RuntimeError)


class TestLogging:
    """Tests for setup_logging."""

    @pytest.fixture
    def logger_name(self):
        name = "prismatic.test_setup"
        yield name
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_sets_level(self, logger_name):
        """Test that the level name is applied to the logger."""
        logger = setup_logging("debug", name=logger_name)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_writes_log_file(self, tmp_path, logger_name):
        """Test that a log file is created next to the console handler."""
        log_file = tmp_path / "logs" / "render.log"
        logger = setup_logging("INFO", log_file=log_file, name=logger_name)
        logger.info("rendered %d tiles", 12)
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "rendered 12 tiles" in log_file.read_text()
