"""Tests for SyncOperations (download, atomic write and self-replace)."""

import os
import stat
import sys
from unittest.mock import patch

import pytest

from packsync.exceptions import DownloadError, SyncWriteError
from packsync.sync.operations import (
    OLD_EXECUTABLE_SUFFIX,
    PARTIAL_DOWNLOAD_SUFFIX,
    SyncOperations,
)


@pytest.fixture
def root(tmp_path):
    root = tmp_path / "MUSHclient"
    root.mkdir()
    return root


def make_operations(pack_server, root, executable=None):
    return SyncOperations(
        pack_server.client(),
        root,
        executable=executable if executable is not None else root / "not-running",
    )


class TestLocalPath:
    """Tests for mapping manifest paths into the root."""

    def test_nested_path(self, pack_server, root):
        ops = make_operations(pack_server, root)
        assert ops.local_path("scripts/main.lua") == (root / "scripts" / "main.lua").resolve()

    @pytest.mark.parametrize("relative_path", ["../escape.txt", "a/../../escape.txt"])
    def test_traversal_is_refused(self, pack_server, root, relative_path):
        ops = make_operations(pack_server, root)
        with pytest.raises(SyncWriteError, match="Refusing to write outside"):
            ops.local_path(relative_path)


class TestDownloadFile:
    """Tests for writing one file."""

    def test_creates_missing_directories(self, pack_server, root):
        pack_server.files = {"sounds/combat/hit.ogg": b"hit"}
        ops = make_operations(pack_server, root)

        written = ops.download_file("sounds/combat/hit.ogg")

        assert written == (root / "sounds" / "combat" / "hit.ogg").resolve()
        assert written.read_bytes() == b"hit"

    def test_overwrites_existing_file(self, pack_server, root):
        (root / "a.txt").write_bytes(b"old")
        pack_server.files = {"a.txt": b"new"}

        make_operations(pack_server, root).download_file("a.txt")

        assert (root / "a.txt").read_bytes() == b"new"
        assert not (root / ("a.txt" + PARTIAL_DOWNLOAD_SUFFIX)).exists()

    def test_failed_download_leaves_target_untouched(self, pack_server, root):
        (root / "a.txt").write_bytes(b"old")
        pack_server.failing_paths = {"a.txt": 404}

        with pytest.raises(DownloadError):
            make_operations(pack_server, root).download_file("a.txt")

        assert (root / "a.txt").read_bytes() == b"old"
        assert sorted(p.name for p in root.iterdir()) == ["a.txt"]

    def test_encoded_url_is_requested(self, pack_server, root):
        pack_server.files = {"worlds/my world.mcl": b"world"}

        make_operations(pack_server, root).download_file("worlds/my world.mcl")

        assert pack_server.requests == [pack_server.base_url + "worlds/my%20world.mcl"]
        assert (root / "worlds" / "my world.mcl").read_bytes() == b"world"


class TestSelfReplace:
    """Tests for replacing the running executable."""

    def test_running_executable_is_moved_aside(self, pack_server, root):
        exe = root / "updater.exe"
        exe.write_bytes(b"old build")
        pack_server.files = {"updater.exe": b"new build"}
        ops = make_operations(pack_server, root, executable=exe)

        assert ops.is_current_executable(exe)
        ops.download_file("updater.exe")

        backup = root / ("updater.exe" + OLD_EXECUTABLE_SUFFIX)
        assert exe.read_bytes() == b"new build"
        assert backup.read_bytes() == b"old build"

    def test_stale_backup_is_overwritten(self, pack_server, root):
        exe = root / "updater.exe"
        exe.write_bytes(b"v2")
        (root / ("updater.exe" + OLD_EXECUTABLE_SUFFIX)).write_bytes(b"v1")
        pack_server.files = {"updater.exe": b"v3"}

        make_operations(pack_server, root, executable=exe).download_file("updater.exe")

        assert exe.read_bytes() == b"v3"
        assert (root / ("updater.exe" + OLD_EXECUTABLE_SUFFIX)).read_bytes() == b"v2"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_mode_is_carried_over(self, pack_server, root):
        exe = root / "updater"
        exe.write_bytes(b"old")
        os.chmod(exe, 0o755)
        pack_server.files = {"updater": b"new"}

        make_operations(pack_server, root, executable=exe).download_file("updater")

        assert stat.S_IMODE(exe.stat().st_mode) == 0o755

    def test_other_files_are_not_moved(self, pack_server, root):
        (root / "a.txt").write_bytes(b"old")
        pack_server.files = {"a.txt": b"new"}

        make_operations(pack_server, root, executable=root / "updater.exe").download_file(
            "a.txt"
        )

        assert not (root / ("a.txt" + OLD_EXECUTABLE_SUFFIX)).exists()

    def test_failed_replace_restores_executable(self, pack_server, root):
        """The old executable is moved back if the new one can't be put in place."""
        exe = root / "updater.exe"
        exe.write_bytes(b"old build")
        pack_server.files = {"updater.exe": b"new build"}
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append((src, dst))
            if len(calls) == 2:
                raise PermissionError("file is locked")
            return real_replace(src, dst)

        ops = make_operations(pack_server, root, executable=exe)
        with patch("packsync.sync.operations.os.replace", side_effect=flaky_replace):
            with pytest.raises(SyncWriteError, match="file is locked"):
                ops.download_file("updater.exe")

        assert exe.read_bytes() == b"old build"
        assert sorted(p.name for p in root.iterdir()) == ["updater.exe"]

    def test_copymode_failure_keeps_new_file(self, pack_server, root):
        exe = root / "updater.exe"
        exe.write_bytes(b"old build")
        pack_server.files = {"updater.exe": b"new build"}
        ops = make_operations(pack_server, root, executable=exe)

        with patch(
            "packsync.sync.operations.shutil.copymode",
            side_effect=PermissionError("denied"),
        ):
            written = ops.download_file("updater.exe")

        backup = root / ("updater.exe" + OLD_EXECUTABLE_SUFFIX)
        assert written.read_bytes() == b"new build"
        assert backup.read_bytes() == b"old build"
