"""Tests for configuration loading and validation logic in main.py."""

from __future__ import annotations

from unittest.mock import MagicMock

from release_ingest.main import build_processor, load_config, validate_config
from release_ingest.models.config import AppConfig
from release_ingest.utils.constants import AI_TIMEOUT_SECONDS, DEFAULT_PROCESSING_VERSION


class TestValidateConfig:
    def test_valid_config_produces_no_warnings(self):
        config = {
            "library_root": "~/Music/Library",
            "processing_version": 3,
            "ai_timeout_seconds": 30,
            "cover_art_timeout_seconds": 10,
        }
        warnings = validate_config(config)
        assert warnings == []

    def test_dangerous_library_root_system_dir(self):
        config = {"library_root": "C:\\Windows\\System32"}
        warnings = validate_config(config)
        assert any("system directory" in w.lower() for w in warnings)
        assert config["organization_enabled"] is False

    def test_dangerous_library_root_drive_root(self):
        """Drive roots like D:\\ should be flagged as too shallow."""
        config = {"library_root": "D:\\"}
        warnings = validate_config(config)
        assert any("level" in w.lower() or "deep" in w.lower() for w in warnings)

    def test_shallow_library_root(self):
        """A path only 1 level deep (e.g. D:\\Music) should warn."""
        config = {"library_root": "D:\\Music"}
        warnings = validate_config(config)
        assert len(warnings) > 0

    def test_unix_system_dir(self):
        config = {"library_root": "/etc"}
        assert validate_config(config)

    def test_non_positive_version_is_repaired(self):
        config = {"processing_version": 0}
        warnings = validate_config(config)
        assert any("processing_version" in w for w in warnings)
        assert config["processing_version"] == DEFAULT_PROCESSING_VERSION

    def test_non_numeric_timeout_is_repaired(self):
        config = {"ai_timeout_seconds": "slow"}
        warnings = validate_config(config)
        assert any("ai_timeout_seconds" in w for w in warnings)
        assert config["ai_timeout_seconds"] == AI_TIMEOUT_SECONDS

    def test_boolean_is_not_a_number(self):
        config = {"cover_art_timeout_seconds": True}
        assert validate_config(config)

    def test_empty_config(self):
        """Empty config should produce no warnings (uses defaults)."""
        config = {}
        warnings = validate_config(config)
        assert warnings == []


class TestLoadConfig:
    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("library_root: /srv/media/music\nai_enabled: true\n", encoding="utf-8")
        assert load_config(path) == {"library_root": "/srv/media/music", "ai_enabled": True}

    def test_missing_file(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == {}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == {}


class TestAppConfig:
    def test_unknown_keys_ignored(self):
        config = AppConfig.from_dict({"library_root": "/x/y/z", "bogus": 1})
        assert config.library_root == "/x/y/z"

    def test_ai_configured(self):
        assert not AppConfig().ai_configured
        assert AppConfig(ai_enabled=True).ai_configured

    def test_build_processor(self, tmp_path):
        config = AppConfig(library_root=str(tmp_path / "lib"), processing_version=4)
        processor = build_processor(config, MagicMock())
        assert processor is not None
