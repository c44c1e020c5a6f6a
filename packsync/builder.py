"""Building the published manifest from a pack checkout.

Run from the directory that contains the pack's target directory. The
version file inside the target directory is bumped first so that it is
part of the manifest, then the target directory is fingerprinted and the
manifest is written next to it.
"""

import logging
import subprocess
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import UpdaterConfig
from .exceptions import PackSyncError, PreconditionError
from .manifest import Manifest, save_manifest
from .output import OutputFormatter
from .sync.ignore import IgnoreFilter
from .sync.progress import SyncProgressTracker
from .sync.scanner import FingerprintGenerator
from .version import Version, read_version_file, write_version_file

logger = logging.getLogger(__name__)

GIT_HOOK_NAME = "pre-commit"


@dataclass
class BuildResult:
    """Files written by a manifest build."""

    manifest_path: Path
    version_path: Path
    version: Version
    manifest: Manifest
    created: bool
    """True if no manifest existed before this build"""


class ManifestBuilder:
    """Bumps the pack version and writes a fresh manifest."""

    def __init__(
        self,
        config: Optional[UpdaterConfig] = None,
        output: Optional[OutputFormatter] = None,
        tracker: Optional[SyncProgressTracker] = None,
    ):
        self.config = config or UpdaterConfig()
        self.output = output or OutputFormatter()
        self.tracker = tracker

    def bump_version(self, version_path: Path, today: Optional[date] = None) -> Version:
        """Create or advance the version file.

        Raises:
            PackSyncError: If the version file cannot be read, parsed or written
        """
        if not version_path.exists() and not self.output.quiet:
            self.output.info(
                f"{self.config.target_dir}'s version file not found; "
                "one will be created."
            )
        try:
            current = read_version_file(version_path)
        except (OSError, ValueError) as e:
            raise PackSyncError(f"Can't read version file {version_path}: {e}") from e

        if current is None:
            if version_path.exists() and not self.output.quiet:
                self.output.warning(
                    "Warning: the version file is empty; using a new version string "
                    "because an old one doesn't exist to update."
                )
            version = Version.today(today)
        else:
            version = current.bumped(today)

        try:
            write_version_file(version_path, version)
        except OSError as e:
            raise PackSyncError(
                f"Can't write new version to {version_path}: {e}"
            ) from e
        return version

    def build(self, directory: Path, today: Optional[date] = None) -> BuildResult:
        """Bump the version and rebuild the manifest.

        Args:
            directory: Parent of the target directory
            today: Date used for the version (defaults to today)

        Returns:
            BuildResult

        Raises:
            PreconditionError: If the target directory does not exist
            PackSyncError: If hashing or writing fails
        """
        target = directory / self.config.target_dir
        if not target.is_dir():
            raise PreconditionError(
                f"The '{self.config.target_dir}' directory doesn't exist; "
                "unable to create / update manifest."
            )

        version_path = target / self.config.version_filename
        version = self.bump_version(version_path, today)
        logger.debug(f"Pack version is now {version}")

        manifest_path = directory / self.config.manifest_filename
        created = not manifest_path.exists()
        if not self.output.quiet:
            if created:
                self.output.info(f"Creating initial {self.config.target_dir} manifest...")
            else:
                self.output.info(f"Rebuilding {self.config.target_dir}'s manifest...")

        ignore_filter = IgnoreFilter.from_directory(target, self.config.ignore_filenames)
        ignore_set = ignore_filter.compile(target, self.config.max_depth)
        generator = FingerprintGenerator(
            algorithm=self.config.hash_algorithm,
            jobs=self.config.jobs,
            max_depth=self.config.max_depth,
            tracker=self.tracker,
        )
        manifest = generator.generate(target, ignore_set)
        save_manifest(manifest_path, manifest)

        if not self.output.quiet:
            self.output.success(f"Manifest written out to '{manifest_path}'.")
        return BuildResult(
            manifest_path=manifest_path,
            version_path=version_path,
            version=version,
            manifest=manifest,
            created=created,
        )


def invoked_as_git_hook(program_name: str, args: Sequence[str]) -> bool:
    """Whether the tool runs as a git pre-commit hook."""
    return Path(program_name).name == GIT_HOOK_NAME or GIT_HOOK_NAME in args


def stage_in_git(
    paths: Sequence[Path],
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> bool:
    """Add files to git's index.

    Returns:
        True if every ``git add`` succeeded
    """
    ok = True
    for path in paths:
        try:
            result = run(["git", "add", str(path)], check=False)
        except OSError as e:
            logger.warning(f"Can't run `git add` for {path}: {e}")
            return False
        if result.returncode != 0:
            logger.warning(f"`git add {path}` exited with {result.returncode}")
            ok = False
    return ok
