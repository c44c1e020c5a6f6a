"""File operations applied while syncing: download, write and self-replace."""

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Callable, Optional

from ..api import PackClient
from ..exceptions import SyncWriteError

logger = logging.getLogger(__name__)

# Suffix given to the running executable when it is moved aside
OLD_EXECUTABLE_SUFFIX = ".old"

# Suffix of the temporary file a download is streamed into
PARTIAL_DOWNLOAD_SUFFIX = ".part"


def current_executable() -> Path:
    """Path of the program file that is running right now.

    For frozen builds this is the interpreter binary itself, otherwise the
    script that was launched.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()


def _same_path(a: Path, b: Path) -> bool:
    return os.path.normcase(str(a.resolve())) == os.path.normcase(str(b.resolve()))


class SyncOperations:
    """Downloads pack files into a local root, one at a time."""

    def __init__(
        self,
        client: PackClient,
        root: Path,
        executable: Optional[Path] = None,
    ):
        """Initialize sync operations.

        Args:
            client: Pack HTTP client
            root: Local directory the manifest paths are relative to
            executable: Path of the running program (defaults to
                :func:`current_executable`)
        """
        self.client = client
        self.root = root
        self.executable = executable if executable is not None else current_executable()

    def local_path(self, relative_path: str) -> Path:
        """Resolve a manifest path inside the root.

        Raises:
            SyncWriteError: If the path would escape the root
        """
        root = self.root.resolve()
        local_path = (root / relative_path).resolve()
        if not local_path.is_relative_to(root) or local_path == root:
            raise SyncWriteError(
                f"Refusing to write outside {root}: {relative_path}",
                relative_path=relative_path,
            )
        return local_path

    def is_current_executable(self, local_path: Path) -> bool:
        """Whether writing ``local_path`` would overwrite the running program."""
        return _same_path(local_path, self.executable)

    @staticmethod
    def backup_path(local_path: Path) -> Path:
        """Where the running executable is moved before it is replaced."""
        return local_path.with_name(local_path.name + OLD_EXECUTABLE_SUFFIX)

    def move_executable_aside(self, local_path: Path, relative_path: str) -> Path:
        """Rename the running executable so its path can be rewritten.

        The old file keeps its bytes under the backup name. A backup left
        over from an earlier update is overwritten.

        Raises:
            SyncWriteError: If the rename fails
        """
        backup = self.backup_path(local_path)
        try:
            os.replace(local_path, backup)
        except OSError as e:
            raise SyncWriteError(
                f"Can't move running executable {local_path} to {backup}: {e}",
                relative_path=relative_path,
            ) from e
        logger.info(f"Moved running executable aside to {backup}")
        return backup

    def download_file(
        self,
        relative_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """Download one pack file and move it into place.

        The bytes are streamed to a ``.part`` file next to the target and
        only renamed over the target once complete, so a failed download
        never leaves a truncated file at a manifest path.

        Args:
            relative_path: Manifest path of the file
            progress_callback: Optional callback function(bytes_downloaded, total_bytes)

        Returns:
            Path that was written

        Raises:
            DownloadError: If the server refuses the file
            NetworkError: If the connection fails
            SyncWriteError: If any local write, rename or mkdir fails
        """
        local_path = self.local_path(relative_path)

        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SyncWriteError(
                f"Can't create directory {local_path.parent}: {e}",
                relative_path=relative_path,
            ) from e

        partial = local_path.with_name(local_path.name + PARTIAL_DOWNLOAD_SUFFIX)
        try:
            self.client.download_file(relative_path, partial, progress_callback)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        backup: Optional[Path] = None
        if local_path.exists() and self.is_current_executable(local_path):
            backup = self.move_executable_aside(local_path, relative_path)

        try:
            os.replace(partial, local_path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            if backup is not None:
                self._restore_executable(backup, local_path)
            raise SyncWriteError(
                f"Can't write {local_path}: {e}", relative_path=relative_path
            ) from e

        if backup is not None:
            try:
                shutil.copymode(backup, local_path)
            except OSError as e:
                logger.warning(
                    f"Can't copy permissions of {backup} to {local_path}: {e}"
                )

        logger.debug(f"Wrote {relative_path} to {local_path}")
        return local_path

    @staticmethod
    def _restore_executable(backup: Path, local_path: Path) -> None:
        """Move the backed-up executable back after a failed replace."""
        try:
            os.replace(backup, local_path)
        except OSError as e:
            logger.error(f"Can't restore {local_path} from {backup}: {e}")
        else:
            logger.info(f"Restored running executable from {backup}")
