"""Tests for UpdaterConfig."""

import pytest

from packsync.config import DEFAULT_TARGET_DIR, UpdaterConfig
from packsync.exceptions import ConfigError


class TestFromEnv:
    """Tests for UpdaterConfig.from_env."""

    def test_defaults_without_variables(self):
        config = UpdaterConfig.from_env({})
        assert config == UpdaterConfig()
        assert config.target_dir == DEFAULT_TARGET_DIR
        assert config.jobs == 2
        assert config.max_depth == 10

    def test_string_and_numeric_overrides(self):
        config = UpdaterConfig.from_env(
            {
                "PACKSYNC_MANIFEST_URL": "https://example.com/m.json",
                "PACKSYNC_JOBS": "4",
                "PACKSYNC_TIMEOUT": "2.5",
            }
        )
        assert config.manifest_url == "https://example.com/m.json"
        assert config.jobs == 4
        assert config.timeout == 2.5

    def test_markers_are_comma_separated(self):
        config = UpdaterConfig.from_env({"PACKSYNC_DIRECTORY_MARKERS": "a.exe, worlds"})
        assert config.directory_markers == ("a.exe", "worlds")

    def test_empty_value_keeps_default(self):
        config = UpdaterConfig.from_env({"PACKSYNC_TARGET_DIR": ""})
        assert config.target_dir == DEFAULT_TARGET_DIR

    def test_invalid_integer(self):
        with pytest.raises(ConfigError, match="PACKSYNC_JOBS"):
            UpdaterConfig.from_env({"PACKSYNC_JOBS": "many"})


class TestValidate:
    """Tests for UpdaterConfig.validate."""

    def test_defaults_are_valid(self):
        assert UpdaterConfig().validate() == UpdaterConfig()

    def test_url_needs_scheme(self):
        with pytest.raises(ConfigError, match="manifest_url"):
            UpdaterConfig(manifest_url="example.com/m.json").validate()

    def test_jobs_must_be_positive(self):
        with pytest.raises(ConfigError, match="jobs"):
            UpdaterConfig(jobs=0).validate()

    def test_unknown_algorithm(self):
        with pytest.raises(ConfigError, match="hash algorithm"):
            UpdaterConfig(hash_algorithm="nope").validate()

    def test_with_overrides_skips_none(self):
        config = UpdaterConfig().with_overrides(jobs=None, manifest_url="https://x.io/m")
        assert config.jobs == 2
        assert config.manifest_url == "https://x.io/m"

    def test_ignore_filenames_order(self):
        config = UpdaterConfig()
        assert config.ignore_filenames == (
            config.standard_ignore_filename,
            config.custom_ignore_filename,
        )
