"""CLI interface for the packsync updater."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from .api import PackClient
from .builder import ManifestBuilder, invoked_as_git_hook, stage_in_git
from .cli_progress import SyncProgressDisplay
from .config import UpdaterConfig
from .exceptions import ConfigError, PackSyncError, PreconditionError
from .output import OutputFormatter
from .sync.engine import SyncEngine, UpdateReport
from .version import read_version_file

logger = logging.getLogger(__name__)

# Exit code for "not run from an installation root" and similar
PRECONDITION_EXIT_CODE = 2


def _handle_error(ctx: Any, out: OutputFormatter, error: BaseException) -> None:
    """Report a fatal error and exit with the matching status."""
    if isinstance(error, KeyboardInterrupt):
        out.warning("\nUpdate cancelled by user")
        ctx.exit(130)
    if isinstance(error, PreconditionError):
        out.error(str(error))
        ctx.exit(PRECONDITION_EXIT_CODE)
    if isinstance(error, PackSyncError):
        out.error(str(error))
        ctx.exit(1)
    logger.debug("Unexpected error", exc_info=error)
    out.error(f"Unexpected error: {error}")
    ctx.exit(1)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option("--manifest-url", help="URL of the published update manifest")
@click.option("--base-url", help="Base URL that pack file paths are appended to")
@click.option("--jobs", "-j", type=int, help="Number of hashing workers")
@click.version_option(package_name="packsync")
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    verbose: bool,
    manifest_url: Optional[str],
    base_url: Optional[str],
    jobs: Optional[int],
) -> None:
    """packsync - keep a pack installation in sync with its published manifest.

    Settings can also be given as PACKSYNC_* environment variables
    (for example PACKSYNC_MANIFEST_URL).
    """
    ctx.ensure_object(dict)
    out = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["out"] = out

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("packsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = (
            UpdaterConfig.from_env()
            .with_overrides(manifest_url=manifest_url, base_file_url=base_url, jobs=jobs)
            .validate()
        )
    except ConfigError as e:
        out.error(f"Invalid configuration: {e}")
        ctx.exit(1)
    ctx.obj["config"] = config


def _make_client(config: UpdaterConfig) -> PackClient:
    return PackClient(
        manifest_url=config.manifest_url,
        base_file_url=config.base_file_url,
        timeout=config.timeout,
    )


def _report_version(
    out: OutputFormatter, report: UpdateReport, config: UpdaterConfig
) -> None:
    if out.quiet:
        return
    try:
        version = read_version_file(report.root / config.version_filename)
    except (OSError, ValueError) as e:
        out.warning(f"Can't read installed version: {e}")
        return
    if version is not None:
        out.info(f"Installed version: {version}")


@main.command()
@click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Installation directory (default: current)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be updated without downloading"
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.option(
    "--save-manifest",
    is_flag=True,
    help="Write the local manifest cache after a successful update",
)
@click.pass_context
def update(
    ctx: Any,
    directory: Path,
    dry_run: bool,
    no_progress: bool,
    save_manifest: bool,
) -> None:
    """Download new and changed pack files.

    Files that exist locally but not in the published manifest are
    reported and left alone.
    """
    out: OutputFormatter = ctx.obj["out"]
    config: UpdaterConfig = ctx.obj["config"]
    directory = directory.resolve()

    try:
        with _make_client(config) as client:
            if no_progress or out.quiet or dry_run:
                engine = SyncEngine(client, config, out)
                report = engine.update(directory, dry_run=dry_run)
            else:
                with SyncProgressDisplay() as display:
                    engine = SyncEngine(
                        client, config, out, tracker=display.create_tracker()
                    )
                    report = engine.update(directory, dry_run=dry_run)

            if save_manifest and not dry_run:
                path = engine.save_local_manifest(report.root)
                if not out.quiet:
                    out.info(f"Local manifest written to {path}")
    except (Exception, KeyboardInterrupt) as e:
        _handle_error(ctx, out, e)
        return

    if not dry_run:
        _report_version(out, report, config)
    if out.json_output:
        out.output_json(report.to_dict())


@main.command()
@click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Installation directory (default: current)",
)
@click.option(
    "--cached",
    is_flag=True,
    help="Compare the saved local manifest instead of hashing files",
)
@click.pass_context
def status(ctx: Any, directory: Path, cached: bool) -> None:
    """Show what an update would change."""
    out: OutputFormatter = ctx.obj["out"]
    config: UpdaterConfig = ctx.obj["config"]

    try:
        with _make_client(config) as client:
            engine = SyncEngine(client, config, out)
            report = engine.update(
                directory.resolve(), dry_run=True, use_cached_manifest=cached
            )
    except (Exception, KeyboardInterrupt) as e:
        _handle_error(ctx, out, e)
        return

    if out.json_output:
        out.output_json(report.to_dict())


@main.command("build-manifest")
@click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Directory containing the pack's target directory (default: current)",
)
@click.option(
    "--git-add",
    is_flag=True,
    help="Stage the manifest and version file with `git add`",
)
@click.pass_context
def build_manifest(ctx: Any, directory: Path, git_add: bool) -> None:
    """Bump the pack version and rebuild the published manifest.

    When installed as a git pre-commit hook the manifest and version
    file are staged automatically.
    """
    out: OutputFormatter = ctx.obj["out"]
    config: UpdaterConfig = ctx.obj["config"]

    try:
        builder = ManifestBuilder(config, out)
        result = builder.build(directory.resolve())
    except (Exception, KeyboardInterrupt) as e:
        _handle_error(ctx, out, e)
        return

    if git_add or invoked_as_git_hook(sys.argv[0], sys.argv[1:]):
        paths = [result.version_path, result.manifest_path]
        if not stage_in_git(paths):
            out.error(
                "Can't execute `git add`; add the manifest and version files "
                "manually before you commit: git add "
                + " ".join(str(p) for p in paths)
            )
            ctx.exit(1)
        if not out.quiet:
            out.success("Hash manifest and version files have been added to git's index.")

    if out.json_output:
        out.output_json(
            {
                "manifest": str(result.manifest_path),
                "version": str(result.version),
                "files": len(result.manifest),
                "created": result.created,
            }
        )


if __name__ == "__main__":
    main()
