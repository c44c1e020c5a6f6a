"""Tests for the SyncEngine update run."""

from pathlib import Path

import pytest

from packsync.config import UpdaterConfig
from packsync.exceptions import DownloadError, PreconditionError
from packsync.manifest import load_manifest
from packsync.output import OutputFormatter
from packsync.sync.engine import RunState, SyncEngine, find_install_root
from packsync.sync.progress import SyncProgressEvent, SyncProgressTracker

NOT_A_PACK_FILE = Path("/nonexistent/updater")


@pytest.fixture
def root(tmp_path):
    root = tmp_path / "MUSHclient"
    root.mkdir()
    return root


def make_engine(pack_server, tracker=None, config=None):
    return SyncEngine(
        pack_server.client(),
        config or UpdaterConfig(),
        OutputFormatter(quiet=True),
        tracker=tracker,
        executable=NOT_A_PACK_FILE,
    )


class TestFindInstallRoot:
    """Tests for the installation root check."""

    def test_directory_named_like_target(self, root):
        assert find_install_root(root, UpdaterConfig()) == root

    def test_directory_with_marker(self, tmp_path):
        (tmp_path / "worlds").mkdir()
        assert find_install_root(tmp_path, UpdaterConfig()) == tmp_path

    def test_unrecognized_directory(self, tmp_path):
        with pytest.raises(PreconditionError, match="from your MUSHclient folder"):
            find_install_root(tmp_path, UpdaterConfig())

    def test_custom_markers(self, tmp_path):
        (tmp_path / "game.cfg").write_text("")
        config = UpdaterConfig(target_dir="Game", directory_markers=("game.cfg",))
        assert find_install_root(tmp_path, config) == tmp_path


class TestUpdate:
    """Tests for full update runs."""

    def test_end_to_end(self, pack_server, root):
        """A modified and a new file are downloaded in path order."""
        (root / "x.txt").write_bytes(b"old x")
        pack_server.files = {"x.txt": b"new x", "y.txt": b"new y"}
        engine = make_engine(pack_server)

        report = engine.update(root)

        assert engine.state == RunState.DONE
        assert [c.relative_path for c in report.comparison.differs] == ["x.txt"]
        assert [c.relative_path for c in report.comparison.added] == ["y.txt"]
        assert report.downloaded == ["x.txt", "y.txt"]
        assert (root / "x.txt").read_bytes() == b"new x"
        assert (root / "y.txt").read_bytes() == b"new y"

    def test_up_to_date_downloads_nothing(self, pack_server, root):
        (root / "a.txt").write_bytes(b"same")
        pack_server.files = {"a.txt": b"same"}

        report = make_engine(pack_server).update(root)

        assert report.downloaded == []
        assert not report.comparison.has_changes
        assert pack_server.requests == [pack_server.manifest_url]

    def test_precondition_failure(self, pack_server, tmp_path):
        engine = make_engine(pack_server)

        with pytest.raises(PreconditionError):
            engine.update(tmp_path)

        assert engine.state == RunState.FAILED
        assert pack_server.requests == []

    def test_dry_run_downloads_nothing(self, pack_server, root):
        pack_server.files = {"a.txt": b"data"}

        report = make_engine(pack_server).update(root, dry_run=True)

        assert report.dry_run
        assert report.comparison.worklist == ["a.txt"]
        assert report.downloaded == []
        assert not (root / "a.txt").exists()

    def test_removed_files_are_kept(self, pack_server, root):
        (root / "mine.txt").write_bytes(b"user data")
        pack_server.files = {"a.txt": b"data"}

        report = make_engine(pack_server).update(root)

        assert [c.relative_path for c in report.comparison.removed] == ["mine.txt"]
        assert (root / "mine.txt").read_bytes() == b"user data"

    def test_first_failure_stops_the_run(self, pack_server, root):
        pack_server.files = {"a.txt": b"a", "b.txt": b"b", "c.txt": b"c"}
        pack_server.failing_paths = {"b.txt": 500}
        engine = make_engine(pack_server)

        with pytest.raises(DownloadError):
            engine.update(root)

        assert engine.state == RunState.FAILED
        assert (root / "a.txt").exists()
        assert not (root / "b.txt").exists()
        assert not (root / "c.txt").exists()
        assert engine.last_report.downloaded == ["a.txt"]

    def test_ignored_paths_are_left_alone(self, pack_server, root):
        (root / "erion-pack-custom.update-ignore").write_text("settings.cfg\n")
        (root / "settings.cfg").write_bytes(b"mine")
        pack_server.files = {"settings.cfg": b"theirs", "a.txt": b"a"}

        report = make_engine(pack_server).update(root)

        assert [c.relative_path for c in report.comparison.ignored] == ["settings.cfg"]
        assert (root / "settings.cfg").read_bytes() == b"mine"
        assert report.downloaded == ["a.txt"]

    def test_engine_runs_once(self, pack_server, root):
        engine = make_engine(pack_server)
        engine.update(root)
        with pytest.raises(RuntimeError):
            engine.update(root)

    def test_progress_events(self, pack_server, root):
        pack_server.files = {"a.txt": b"a", "b/c.txt": b"c"}
        events = []
        tracker = SyncProgressTracker(callback=events.append)

        make_engine(pack_server, tracker=tracker).update(root)

        completed = [
            e.relative_path
            for e in events
            if e.event == SyncProgressEvent.DOWNLOAD_FILE_COMPLETE
        ]
        assert completed == ["a.txt", "b/c.txt"]
        assert events[-1].event == SyncProgressEvent.DOWNLOAD_COMPLETE
        assert events[-1].files_done == 2


class TestLocalManifestCache:
    """Tests for the persisted local manifest."""

    def test_save_and_compare_cached(self, pack_server, root):
        pack_server.files = {"a.txt": b"a"}
        engine = make_engine(pack_server)
        engine.update(root)

        path = engine.save_local_manifest(root)

        assert path == root / "erion-pack.update-manifest"
        assert dict(load_manifest(path)) == pack_server.manifest()

        report = make_engine(pack_server).update(
            root, dry_run=True, use_cached_manifest=True
        )
        assert not report.comparison.has_changes

    def test_cache_file_is_not_fingerprinted(self, pack_server, root):
        engine = make_engine(pack_server)
        (root / "a.txt").write_bytes(b"a")
        engine.save_local_manifest(root)

        manifest = engine.fingerprint(root, engine.load_ignore_filter(root))

        assert list(manifest) == ["a.txt"]
