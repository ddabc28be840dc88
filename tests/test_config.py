"""Tests for settings."""

from py_zones.config import Settings, settings


class TestSettings:
    """Test defaults and environment overrides."""

    def test_defaults(self):
        assert settings.bbox == (6.5, 47.5, 9.0, 50.0)
        assert settings.sub_region_name_key == "circo_nom"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("PY_ZONES_BBOX_MAX_LON", "10.5")
        monkeypatch.setenv("PY_ZONES_SUB_REGION_NAME_KEY", "nom")

        overridden = Settings()

        assert overridden.bbox == (6.5, 47.5, 10.5, 50.0)
        assert overridden.sub_region_name_key == "nom"
