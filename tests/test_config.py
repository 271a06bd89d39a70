"""
Unit tests for configuration loading and validation.

Tests strict validation of settings files and data directory resolution.
"""

import os
import tempfile
from pathlib import Path

import pytest
import yaml

from claude_usage_stats.config.loader import (
    CacheSettings,
    ParserKind,
    ParserSettings,
    Settings,
    load_settings,
)
from claude_usage_stats.config.paths import CONFIG_DIR_ENV_VAR, DataDirectoryResolver


class TestSettingsLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_path = self._write_config({
            "data_directory": "/data/claude",
            "cache": {"ttl_seconds": 600, "stale_after_seconds": 60},
            "parser": {"kind": "legacy", "max_concurrent_files": 4, "cache_ttl_seconds": 120}
        })

        settings = load_settings(config_path)

        assert settings.data_directory == Path("/data/claude")
        assert settings.cache.ttl_seconds == 600.0
        assert settings.cache.stale_after_seconds == 60.0
        assert settings.parser.kind == ParserKind.LEGACY
        assert settings.parser.max_concurrent_files == 4
        assert settings.parser.cache_ttl_seconds == 120.0

    def test_partial_config_uses_defaults(self):
        """Test that omitted sections fall back to defaults."""
        config_path = self._write_config({"parser": {"kind": "STREAMING"}})

        settings = load_settings(config_path)

        assert settings.data_directory is None
        assert settings.cache == CacheSettings()
        assert settings.parser.kind == ParserKind.STREAMING
        assert settings.parser.max_concurrent_files == 8

    def test_data_directory_expands_user(self):
        """Test that ~ in the data directory is expanded."""
        config_path = self._write_config({"data_directory": "~/claude-data"})

        settings = load_settings(config_path)

        assert settings.data_directory == Path.home() / "claude-data"

    def test_missing_file_raises_error(self):
        """Test that a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_settings(os.path.join(self.temp_dir, "missing.yaml"))

    def test_empty_file_raises_error(self):
        """Test that an empty config file is rejected."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        Path(config_path).write_text("")

        with pytest.raises(ValueError, match="Configuration file is empty"):
            load_settings(config_path)

    def test_invalid_yaml_raises_error(self):
        """Test that malformed YAML raises a YAML error."""
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        Path(config_path).write_text("cache: [unclosed\n")

        with pytest.raises(yaml.YAMLError, match="Invalid YAML"):
            load_settings(config_path)

    def test_non_mapping_rejected(self):
        """Test that a top-level list is rejected."""
        config_path = self._write_config(["cache"])

        with pytest.raises(ValueError, match="Configuration must be a dictionary"):
            load_settings(config_path)

    def test_unknown_top_level_keys_rejected(self):
        """Test that unknown keys are rejected."""
        config_path = self._write_config({"cache": {}, "budget": {"daily": 1}})

        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_settings(config_path)

    def test_unknown_cache_keys_rejected(self):
        """Test that unknown cache keys are rejected."""
        config_path = self._write_config({"cache": {"ttl": 10}})

        with pytest.raises(ValueError, match="Unknown keys in cache"):
            load_settings(config_path)

    def test_non_positive_ttl_rejected(self):
        """Test that a zero TTL is rejected."""
        config_path = self._write_config({"cache": {"ttl_seconds": 0}})

        with pytest.raises(ValueError, match="'ttl_seconds' in cache must be > 0"):
            load_settings(config_path)

    def test_stale_window_must_be_shorter_than_ttl(self):
        """Test that the stale window cannot cover the whole TTL."""
        config_path = self._write_config({"cache": {"ttl_seconds": 100, "stale_after_seconds": 100}})

        with pytest.raises(ValueError, match="must be less than 'ttl_seconds'"):
            load_settings(config_path)

    def test_zero_stale_window_accepted(self):
        """Test that a zero stale window loads, matching the dataclass rule."""
        config_path = self._write_config({"cache": {"ttl_seconds": 600, "stale_after_seconds": 0}})

        settings = load_settings(config_path)

        assert settings.cache.stale_after_seconds == 0.0

    def test_negative_stale_window_rejected(self):
        """Test that a negative stale window is rejected."""
        config_path = self._write_config({"cache": {"stale_after_seconds": -1}})

        with pytest.raises(ValueError, match="'stale_after_seconds' in cache must be >= 0"):
            load_settings(config_path)

    def test_invalid_parser_kind_rejected(self):
        """Test that an unknown parser kind lists the valid ones."""
        config_path = self._write_config({"parser": {"kind": "fast"}})

        with pytest.raises(ValueError, match="'kind' in parser must be one of"):
            load_settings(config_path)

    @pytest.mark.parametrize("value", [0, -1, 2.5, True, "8"])
    def test_invalid_concurrency_rejected(self, value):
        """Test that concurrency must be a positive integer."""
        config_path = self._write_config({"parser": {"max_concurrent_files": value}})

        with pytest.raises(ValueError, match="must be a positive integer"):
            load_settings(config_path)

    def test_non_string_data_directory_rejected(self):
        """Test that the data directory must be a string."""
        config_path = self._write_config({"data_directory": 42})

        with pytest.raises(ValueError, match="'data_directory' must be a string"):
            load_settings(config_path)


class TestSettingsValidation:
    """Test dataclass validation of settings values."""

    def test_defaults(self):
        """Default settings match the documented values."""
        settings = Settings.defaults()

        assert settings.cache.ttl_seconds == 1800.0
        assert settings.cache.stale_after_seconds == 300.0
        assert settings.parser.kind == ParserKind.STREAMING
        assert settings.parser.cache_ttl_seconds == 3600.0

    def test_cache_settings_reject_zero_ttl(self):
        with pytest.raises(ValueError, match="ttl_seconds must be > 0"):
            CacheSettings(ttl_seconds=0)

    def test_cache_settings_reject_stale_window_covering_ttl(self):
        with pytest.raises(ValueError, match="must be less than 'ttl_seconds'"):
            CacheSettings(ttl_seconds=60, stale_after_seconds=60)

    def test_cache_settings_allow_zero_stale_window(self):
        assert CacheSettings(ttl_seconds=60, stale_after_seconds=0).stale_after_seconds == 0

    def test_parser_settings_reject_zero_concurrency(self):
        with pytest.raises(ValueError, match="max_concurrent_files must be > 0"):
            ParserSettings(max_concurrent_files=0)


class TestDataDirectoryResolver:
    """Test data directory precedence."""

    def test_explicit_directory_wins(self, tmp_path):
        """An explicit directory overrides the environment."""
        resolver = DataDirectoryResolver(
            directory=tmp_path,
            environ={CONFIG_DIR_ENV_VAR: "/elsewhere"}
        )
        assert resolver.data_directory() == tmp_path

    def test_environment_variable(self):
        """CLAUDE_CONFIG_DIR is used when no directory is given."""
        resolver = DataDirectoryResolver(environ={CONFIG_DIR_ENV_VAR: "/opt/claude"})
        assert resolver.data_directory() == Path("/opt/claude")

    def test_config_directory_maps_to_parent(self):
        """A directory named config resolves to its parent."""
        resolver = DataDirectoryResolver(environ={CONFIG_DIR_ENV_VAR: "/opt/claude/config"})
        assert resolver.data_directory() == Path("/opt/claude")

    def test_home_default(self):
        """Without overrides the data lives in ~/.claude."""
        resolver = DataDirectoryResolver(environ={})
        assert resolver.data_directory() == Path.home() / ".claude"

    def test_empty_environment_variable_ignored(self):
        """An empty CLAUDE_CONFIG_DIR falls back to the home directory."""
        resolver = DataDirectoryResolver(environ={CONFIG_DIR_ENV_VAR: ""})
        assert resolver.data_directory() == Path.home() / ".claude"

    def test_projects_directory(self, tmp_path):
        """Logs live in the projects subdirectory."""
        resolver = DataDirectoryResolver(directory=tmp_path)
        assert resolver.projects_directory() == tmp_path / "projects"
