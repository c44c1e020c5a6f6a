"""Tests for the pack version counter."""

from datetime import date

import pytest

from packsync.version import Version, read_version_file, write_version_file


class TestVersion:
    """Tests for Version."""

    def test_parse_and_str(self):
        version = Version.parse(" 2017.12.10.1\n")
        assert version == Version(2017, 12, 10, 1)
        assert str(version) == "2017.12.10.1"

    @pytest.mark.parametrize("value", ["2017.12.10", "2017.x.10.1", "", "1.2.3.4.5"])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            Version.parse(value)

    def test_today(self):
        assert Version.today(date(2024, 3, 5)) == Version(2024, 3, 5, 1)

    def test_bump_same_day_increments_patch(self):
        version = Version(2024, 3, 5, 2)
        assert version.bumped(date(2024, 3, 5)) == Version(2024, 3, 5, 3)

    def test_bump_new_day_resets_patch(self):
        version = Version(2024, 3, 5, 7)
        assert version.bumped(date(2024, 3, 6)) == Version(2024, 3, 6, 1)


class TestVersionFile:
    """Tests for reading and writing version files."""

    def test_missing_file(self, tmp_path):
        assert read_version_file(tmp_path / "pack.ver") is None

    def test_empty_file(self, tmp_path):
        path = tmp_path / "pack.ver"
        path.write_text("  \n")
        assert read_version_file(path) is None

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "pack.ver"
        write_version_file(path, Version(2020, 1, 2, 3))
        assert path.read_text() == "2020.1.2.3"
        assert read_version_file(path) == Version(2020, 1, 2, 3)
