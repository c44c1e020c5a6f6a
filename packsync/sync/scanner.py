"""Directory scanning and fingerprinting for sync operations."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import DEFAULT_HASH_ALGORITHM, DEFAULT_JOBS, DEFAULT_MAX_DEPTH
from ..exceptions import FingerprintError
from ..manifest import Manifest
from ..utils import hash_file
from .ignore import IgnoreSet
from .progress import SyncProgressEvent, SyncProgressTracker

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file found by a scan."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    @classmethod
    def from_entry(cls, entry: os.DirEntry, relative_path: str) -> "LocalFile":
        """Create LocalFile from a directory entry.

        Args:
            entry: Entry returned by os.scandir
            relative_path: POSIX path relative to the scan root

        Returns:
            LocalFile instance
        """
        return cls(
            path=Path(entry.path),
            relative_path=relative_path,
            size=entry.stat().st_size,
        )


class DirectoryScanner:
    """Scans a directory tree for regular files.

    Directories deeper than ``max_depth`` below the root are not listed;
    files there are silently left out. Paths in the ignore set are skipped
    and ignored directories are not entered.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/games/MUSHclient"))
        >>> for f in files:
        ...     print(f.relative_path)
    """

    def __init__(
        self,
        ignore_set: Optional[IgnoreSet] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize directory scanner.

        Args:
            ignore_set: Paths to leave out of the scan
            max_depth: Deepest directory level to list
        """
        self.ignore_set = ignore_set or IgnoreSet()
        self.max_depth = max_depth

    def scan_local(self, directory: Path) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Root of the scan

        Returns:
            LocalFile objects in lexicographic relative-path order

        Raises:
            FingerprintError: If a directory or file cannot be examined
        """
        files: list[LocalFile] = []
        self._scan_dir(directory, "", 0, files)
        files.sort(key=lambda f: f.relative_path)
        return files

    def _scan_dir(
        self, directory: Path, prefix: str, depth: int, files: list[LocalFile]
    ) -> None:
        if depth >= self.max_depth:
            return

        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            raise FingerprintError(
                f"Error traversing directory {directory}: {e}", str(directory)
            ) from e

        for entry in entries:
            relative_path = f"{prefix}{entry.name}"
            try:
                if entry.is_dir(follow_symlinks=False):
                    if self.ignore_set.prunes(relative_path):
                        logger.debug(f"Skipping ignored directory: {relative_path}")
                        continue
                    self._scan_dir(
                        Path(entry.path), relative_path + "/", depth + 1, files
                    )
                elif entry.is_file():
                    if relative_path in self.ignore_set:
                        logger.debug(f"Ignoring (from rules): {relative_path}")
                        continue
                    files.append(LocalFile.from_entry(entry, relative_path))
            except OSError as e:
                raise FingerprintError(
                    f"Can't read entry {entry.path}: {e}", relative_path
                ) from e


class FingerprintGenerator:
    """Builds a Manifest by hashing every file of a scan.

    Hashing runs on a small thread pool. The manifest does not depend on
    the number of workers or on the order in which they finish.
    """

    def __init__(
        self,
        algorithm: str = DEFAULT_HASH_ALGORITHM,
        jobs: int = DEFAULT_JOBS,
        max_depth: int = DEFAULT_MAX_DEPTH,
        tracker: Optional[SyncProgressTracker] = None,
    ):
        """Initialize the generator.

        Args:
            algorithm: hashlib algorithm name
            jobs: Number of hashing workers
            max_depth: Deepest directory level to list
            tracker: Optional progress tracker
        """
        self.algorithm = algorithm
        self.jobs = max(1, jobs)
        self.max_depth = max_depth
        self.tracker = tracker

    def generate(self, root: Path, ignore_set: Optional[IgnoreSet] = None) -> Manifest:
        """Fingerprint every non-ignored file under ``root``.

        Args:
            root: Directory to fingerprint
            ignore_set: Paths to leave out

        Returns:
            Manifest of relative path to hex digest

        Raises:
            FingerprintError: If any file or directory cannot be read.
                No partial manifest is returned.
        """
        if self.tracker:
            self.tracker.emit(SyncProgressEvent.SCAN_START, directory=str(root))

        scanner = DirectoryScanner(ignore_set=ignore_set, max_depth=self.max_depth)
        local_files = scanner.scan_local(root)
        logger.debug(
            f"Hashing {len(local_files)} file(s) under {root} "
            f"with {self.jobs} worker(s) using {self.algorithm}"
        )
        if self.tracker:
            self.tracker.emit(
                SyncProgressEvent.SCAN_COMPLETE,
                directory=str(root),
                files_total=len(local_files),
                bytes_total=sum(f.size for f in local_files),
            )

        hashes: dict[str, str] = {}
        executor = ThreadPoolExecutor(max_workers=self.jobs)
        try:
            futures = {
                executor.submit(hash_file, local_file.path, self.algorithm): local_file
                for local_file in local_files
            }
            for future in as_completed(futures):
                local_file = futures[future]
                try:
                    hashes[local_file.relative_path] = future.result()
                except OSError as e:
                    raise FingerprintError(
                        f"Can't read {local_file.path}: {e}", local_file.relative_path
                    ) from e
                if self.tracker:
                    self.tracker.emit(
                        SyncProgressEvent.HASH_FILE_COMPLETE,
                        relative_path=local_file.relative_path,
                        files_total=len(local_files),
                        files_done=len(hashes),
                    )
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        return Manifest(hashes)
