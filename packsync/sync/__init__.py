"""Sync engine for packsync - fingerprinting, comparison and download."""

from .comparator import ChangeType, ComparisonResult, ManifestComparator, PathComparison
from .engine import RunState, SyncEngine, UpdateReport, find_install_root
from .ignore import IgnoreFilter, IgnoreSet, IgnoreSource, load_ignore_file
from .operations import SyncOperations, current_executable
from .progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker
from .scanner import DirectoryScanner, FingerprintGenerator, LocalFile

__all__ = [
    "SyncEngine",
    "RunState",
    "UpdateReport",
    "find_install_root",
    "SyncOperations",
    "current_executable",
    "DirectoryScanner",
    "FingerprintGenerator",
    "LocalFile",
    "ManifestComparator",
    "ComparisonResult",
    "PathComparison",
    "ChangeType",
    "IgnoreFilter",
    "IgnoreSet",
    "IgnoreSource",
    "load_ignore_file",
    "SyncProgressEvent",
    "SyncProgressInfo",
    "SyncProgressTracker",
]
