import pytest
from hypothesis import given, strategies as st

from pixguard.config import Settings


class TestSettings:
    def test_default_values(self):
        """Defaults match the reference calibration."""
        settings = Settings()
        assert settings.grid_size == 8
        assert settings.similarity_threshold == 0.90
        assert settings.min_byte_size == 50_000
        assert settings.min_aspect_ratio == 0.5
        assert settings.max_aspect_ratio == 3.0
        assert settings.min_color_variance == 1000
        assert settings.sample_stride == 100
        assert "car" in settings.vehicle_keywords
        assert "araç" in settings.vehicle_keywords

    def test_custom_values(self):
        settings = Settings(grid_size=16, similarity_threshold=0.95, min_byte_size=0)
        assert settings.grid_size == 16
        assert settings.similarity_threshold == 0.95
        assert settings.min_byte_size == 0

    def test_keywords_are_normalised(self):
        settings = Settings(vehicle_keywords=("CAR", "Truck"), allowed_extensions=(".JPG",))
        assert settings.vehicle_keywords == ("car", "truck")
        assert settings.allowed_extensions == ("jpg",)

    @pytest.mark.parametrize("kwargs", [
        {"grid_size": 1},
        {"similarity_threshold": 1.5},
        {"similarity_threshold": -0.1},
        {"min_byte_size": -1},
        {"min_aspect_ratio": 0},
        {"min_aspect_ratio": 4.0, "max_aspect_ratio": 3.0},
        {"min_color_variance": -1},
        {"sample_stride": 0},
        {"remote_timeout": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            Settings(**kwargs)


class TestSettingsFromEnv:
    def test_overrides_numeric_knobs(self):
        env = {
            "PIXGUARD_SIMILARITY_THRESHOLD": "0.95",
            "PIXGUARD_GRID_SIZE": "16",
            "PIXGUARD_REJECT_PROHIBITED_NAMES": "yes",
        }
        settings = Settings.from_env(environ=env)
        assert settings.similarity_threshold == 0.95
        assert settings.grid_size == 16
        assert settings.reject_prohibited_names is True

    def test_empty_environment_gives_defaults(self):
        assert Settings.from_env(environ={}) == Settings()

    def test_invalid_override_raises(self):
        with pytest.raises(ValueError):
            Settings.from_env(environ={"PIXGUARD_SIMILARITY_THRESHOLD": "2"})


class TestConfigValidation:
    @given(threshold=st.floats(min_value=0.0, max_value=1.0))
    def test_any_threshold_in_unit_interval_is_valid(self, threshold):
        assert Settings(similarity_threshold=threshold).similarity_threshold == threshold

    @given(grid_size=st.integers(min_value=-100, max_value=1))
    def test_degenerate_grid_sizes_rejected(self, grid_size):
        with pytest.raises(ValueError):
            Settings(grid_size=grid_size)
