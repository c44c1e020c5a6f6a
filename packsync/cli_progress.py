"""CLI progress display for update runs.

This module provides Rich-based progress displays that work with
the SyncProgressTracker from the sync engine.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .sync.progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker
from .utils import format_size


class SyncProgressDisplay:
    """Rich-based progress display for update runs.

    One task tracks hashing of the local tree, a second one tracks the
    download worklist and advances once per completed file.
    """

    def __init__(self) -> None:
        """Initialize the progress display."""
        self._progress: Optional[Progress] = None
        self._hash_task: Optional[TaskID] = None
        self._download_task: Optional[TaskID] = None

    def create_tracker(self) -> SyncProgressTracker:
        """Create a SyncProgressTracker that updates this display.

        Returns:
            A configured SyncProgressTracker
        """
        return SyncProgressTracker(callback=self._handle_event)

    def _handle_event(self, info: SyncProgressInfo) -> None:
        """Handle a progress event from the tracker.

        Args:
            info: Progress information
        """
        if self._progress is None:
            return

        if info.event == SyncProgressEvent.SCAN_COMPLETE:
            self._hash_task = self._progress.add_task(
                "Hashing",
                total=info.files_total,
                detail=f"{info.files_total} files, {format_size(info.bytes_total)}",
            )

        elif info.event == SyncProgressEvent.HASH_FILE_COMPLETE:
            if self._hash_task is not None:
                self._progress.update(self._hash_task, completed=info.files_done)

        elif info.event == SyncProgressEvent.DOWNLOAD_START:
            self._download_task = self._progress.add_task(
                "Downloading", total=info.files_total, detail=""
            )

        elif info.event == SyncProgressEvent.DOWNLOAD_FILE_PROGRESS:
            if self._download_task is not None and info.bytes_total:
                self._progress.update(
                    self._download_task,
                    detail=(
                        f"{info.relative_path} "
                        f"{format_size(info.bytes_done)}/{format_size(info.bytes_total)}"
                    ),
                )

        elif info.event == SyncProgressEvent.DOWNLOAD_FILE_COMPLETE:
            if self._download_task is not None:
                self._progress.update(
                    self._download_task,
                    completed=info.files_done,
                    detail=info.relative_path,
                )

        elif info.event == SyncProgressEvent.DOWNLOAD_COMPLETE:
            if self._download_task is not None:
                self._progress.update(
                    self._download_task,
                    description="Download complete",
                    detail=f"{info.files_done}/{info.files_total} files",
                )

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("[cyan]{task.fields[detail]}"),
            TimeElapsedColumn(),
            refresh_per_second=4,
        )
        self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._hash_task = None
            self._download_task = None
