"""Progress events emitted while an update runs."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class SyncProgressEvent(str, Enum):
    """Stages reported to a progress tracker."""

    SCAN_START = "scan_start"
    SCAN_COMPLETE = "scan_complete"
    HASH_FILE_COMPLETE = "hash_file_complete"
    DOWNLOAD_START = "download_start"
    DOWNLOAD_FILE_PROGRESS = "download_file_progress"
    DOWNLOAD_FILE_COMPLETE = "download_file_complete"
    DOWNLOAD_COMPLETE = "download_complete"


@dataclass
class SyncProgressInfo:
    """Snapshot passed to the tracker callback."""

    event: SyncProgressEvent
    directory: str = ""
    relative_path: str = ""
    files_total: int = 0
    files_done: int = 0
    bytes_total: int = 0
    bytes_done: int = 0


class SyncProgressTracker:
    """Forwards progress events to a callback.

    The callback is invoked synchronously on the thread that emits the
    event, once per completed path for downloads.
    """

    def __init__(self, callback: Optional[Callable[[SyncProgressInfo], None]] = None):
        self.callback = callback
        self.events_emitted = 0

    def emit(self, event: SyncProgressEvent, **fields) -> SyncProgressInfo:
        info = SyncProgressInfo(event=event, **fields)
        self.events_emitted += 1
        if self.callback is not None:
            self.callback(info)
        return info
