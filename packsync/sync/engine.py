"""Core sync engine for running a pack update."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..api import PackClient
from ..config import UpdaterConfig
from ..exceptions import PackSyncError, PreconditionError
from ..manifest import Manifest, load_manifest, save_manifest
from ..output import OutputFormatter
from .comparator import ComparisonResult, ManifestComparator
from .ignore import IgnoreFilter, IgnoreSet
from .operations import SyncOperations
from .progress import SyncProgressEvent, SyncProgressTracker
from .scanner import FingerprintGenerator

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Stages of one update run."""

    NOT_STARTED = "not_started"
    MARKER_CHECK = "marker_check"
    MANIFEST_FETCH = "manifest_fetch"
    LOCAL_FINGERPRINT = "local_fingerprint"
    DIFF = "diff"
    DOWNLOAD = "download"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UpdateReport:
    """What an update run found and did."""

    root: Path
    comparison: ComparisonResult
    dry_run: bool = False
    downloaded: list[str] = field(default_factory=list)
    replaced_executable: Optional[Path] = None
    """Backup path of the running executable, if it was replaced"""

    def to_dict(self) -> dict:
        data = self.comparison.to_dict()
        data.update(
            {
                "root": str(self.root),
                "dry_run": self.dry_run,
                "downloaded": list(self.downloaded),
                "replaced_executable": (
                    str(self.replaced_executable) if self.replaced_executable else None
                ),
            }
        )
        return data


def find_install_root(directory: Path, config: UpdaterConfig) -> Path:
    """Check that ``directory`` is an installation root.

    A directory qualifies if its name is the configured target directory
    name or if it contains one of the configured marker entries.

    Raises:
        PreconditionError: If the directory is not recognizable
    """
    if directory.name == config.target_dir:
        logger.debug(f"{directory} matches target directory name")
        return directory
    for marker in config.directory_markers:
        marker_path = directory / marker
        if marker_path.exists():
            logger.debug(f"Marker found: {marker_path}")
            return directory
    raise PreconditionError(
        f"You must run the {config.target_dir} updater from your "
        f"{config.target_dir} folder."
    )


class SyncEngine:
    """Runs the update state machine.

    ``NOT_STARTED -> MARKER_CHECK -> MANIFEST_FETCH -> LOCAL_FINGERPRINT ->
    DIFF -> DOWNLOAD -> DONE``; any error moves the run to ``FAILED`` and
    is re-raised. A failed run is never resumed.
    """

    def __init__(
        self,
        client: PackClient,
        config: Optional[UpdaterConfig] = None,
        output: Optional[OutputFormatter] = None,
        tracker: Optional[SyncProgressTracker] = None,
        executable: Optional[Path] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Pack HTTP client
            config: Deployment configuration
            output: Output formatter for displaying progress/status
            tracker: Optional progress tracker
            executable: Path of the running program, for self-replacement
        """
        self.client = client
        self.config = config or UpdaterConfig()
        self.output = output or OutputFormatter()
        self.tracker = tracker
        self.executable = executable
        self.state = RunState.NOT_STARTED
        self.last_report: Optional[UpdateReport] = None

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Update state: {self.state.value} -> {state.value}")
        self.state = state

    def load_ignore_filter(self, root: Path) -> IgnoreFilter:
        """Standard then custom ignore rules from ``root``."""
        return IgnoreFilter.from_directory(root, self.config.ignore_filenames)

    def fingerprint(self, root: Path, ignore_filter: IgnoreFilter) -> Manifest:
        """Hash every non-ignored file under ``root``.

        The local manifest cache file is never part of the manifest.
        """
        ignore_set = ignore_filter.compile(root, self.config.max_depth)
        ignore_set = IgnoreSet(
            ignore_set.files | {self.config.manifest_filename},
            ignore_set.directories,
        )
        generator = FingerprintGenerator(
            algorithm=self.config.hash_algorithm,
            jobs=self.config.jobs,
            max_depth=self.config.max_depth,
            tracker=self.tracker,
        )
        return generator.generate(root, ignore_set)

    def update(
        self,
        directory: Path,
        dry_run: bool = False,
        use_cached_manifest: bool = False,
    ) -> UpdateReport:
        """Bring ``directory`` in line with the published manifest.

        Args:
            directory: Directory the tool was started from
            dry_run: If True, stop after the diff and download nothing
            use_cached_manifest: Compare against the persisted local manifest
                instead of hashing the tree

        Returns:
            UpdateReport

        Raises:
            PreconditionError: If ``directory`` is not an installation root
            PackSyncError: On any fatal error of a later stage
        """
        if self.state != RunState.NOT_STARTED:
            raise RuntimeError("SyncEngine instances run a single update")

        try:
            self._enter(RunState.MARKER_CHECK)
            root = find_install_root(directory, self.config)

            self._enter(RunState.MANIFEST_FETCH)
            if not self.output.quiet:
                self.output.info("Retrieving update manifest...")
            remote = self.client.fetch_manifest()

            self._enter(RunState.LOCAL_FINGERPRINT)
            ignore_filter = self.load_ignore_filter(root)
            if use_cached_manifest:
                local = load_manifest(root / self.config.manifest_filename)
            else:
                if not self.output.quiet:
                    self.output.info(f"Hashing files in {root}...")
                start = time.time()
                local = self.fingerprint(root, ignore_filter)
                logger.debug(
                    f"Fingerprinted {len(local)} file(s) in {time.time() - start:.2f}s"
                )

            self._enter(RunState.DIFF)
            comparator = ManifestComparator(
                ignore=ignore_filter.matches if ignore_filter else None
            )
            comparison = comparator.compare(local, remote)
            report = UpdateReport(root=root, comparison=comparison, dry_run=dry_run)
            self.last_report = report
            self._display_plan(comparison, dry_run)

            if not dry_run:
                self._enter(RunState.DOWNLOAD)
                self._execute_worklist(report)

            self._enter(RunState.DONE)
        except PackSyncError:
            self._enter(RunState.FAILED)
            raise

        if not self.output.quiet:
            self._display_summary(report)
        return report

    def save_local_manifest(self, root: Path) -> Path:
        """Re-hash ``root`` and persist the result as the local manifest cache.

        Returns:
            Path of the written manifest file
        """
        manifest = self.fingerprint(root, self.load_ignore_filter(root))
        path = root / self.config.manifest_filename
        save_manifest(path, manifest)
        return path

    def _execute_worklist(self, report: UpdateReport) -> None:
        """Download every worklist path in order, stopping at the first error."""
        worklist = report.comparison.worklist
        operations = SyncOperations(self.client, report.root, self.executable)
        total = len(worklist)

        if self.tracker:
            self.tracker.emit(
                SyncProgressEvent.DOWNLOAD_START,
                directory=str(report.root),
                files_total=total,
            )

        for relative_path in worklist:
            logger.debug(f"Downloading {relative_path}...")
            action_start = time.time()

            def on_bytes(done: int, size: int, path: str = relative_path) -> None:
                if self.tracker:
                    self.tracker.emit(
                        SyncProgressEvent.DOWNLOAD_FILE_PROGRESS,
                        relative_path=path,
                        files_total=total,
                        files_done=len(report.downloaded),
                        bytes_total=size,
                        bytes_done=done,
                    )

            try:
                local_path = operations.local_path(relative_path)
                replacing_self = (
                    local_path.exists() and operations.is_current_executable(local_path)
                )
                operations.download_file(relative_path, progress_callback=on_bytes)
            except PackSyncError as e:
                if not self.output.quiet:
                    self.output.error(f"Error syncing {relative_path}: {e}")
                    self.output.warning(
                        f"Update stopped after {len(report.downloaded)} of "
                        f"{total} file(s); run the updater again to finish."
                    )
                raise

            report.downloaded.append(relative_path)
            if replacing_self:
                report.replaced_executable = operations.backup_path(local_path)
            logger.debug(
                f"Download of {relative_path} took {time.time() - action_start:.2f}s"
            )
            if self.tracker:
                self.tracker.emit(
                    SyncProgressEvent.DOWNLOAD_FILE_COMPLETE,
                    relative_path=relative_path,
                    files_total=total,
                    files_done=len(report.downloaded),
                )

        if self.tracker:
            self.tracker.emit(
                SyncProgressEvent.DOWNLOAD_COMPLETE,
                directory=str(report.root),
                files_total=total,
                files_done=len(report.downloaded),
            )

    def _display_plan(self, comparison: ComparisonResult, dry_run: bool) -> None:
        if self.output.quiet:
            return

        self.output.info(
            f"Comparison results: {len(comparison.added)} new files, "
            f"{len(comparison.differs)} modified files, "
            f"{len(comparison.removed)} removed files."
        )
        if comparison.ignored:
            self.output.info(f"  {len(comparison.ignored)} file(s) ignored")
        if dry_run:
            for c in comparison.added:
                self.output.info(f"  + {c.relative_path}")
            for c in comparison.differs:
                self.output.info(f"  ~ {c.relative_path}")
            for c in comparison.removed:
                self.output.info(f"  - {c.relative_path} (kept)")
        self.output.print("")

    def _display_summary(self, report: UpdateReport) -> None:
        if report.dry_run:
            self.output.success("Dry run complete!")
            return
        if report.downloaded:
            self.output.success(f"Updated {len(report.downloaded)} file(s).")
        else:
            self.output.success("Everything is up to date.")
        if report.replaced_executable is not None:
            self.output.info(
                "The updater replaced itself; the previous version was kept as "
                f"{report.replaced_executable.name}."
            )
