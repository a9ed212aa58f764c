"""
Command-line interface for media-mirror.

This module implements the CLI using Click, with rich-click for the
output colors. Every command loads config.yaml, sets up logging under the
storage directory and opens the local store before doing its work.

Commands:
    mirror sync-tree --kind media|clip [--scope TAG] [--reset]
    mirror reset-tree --kind media|clip [--scope TAG]
    mirror sync-playlist [--reset]
    mirror reset-playlist
    mirror upload FILE [--scope TAG] [--name NAME] [--note TEXT] [--subtype 3D|360]
    mirror delete --kind media|clip ID [ID ...]
    mirror list --kind media|clip|playlist [--scope TAG] [--search TEXT]
    mirror startup

Usage:
    # Mirror every media scope
    mirror sync-tree --kind media

    # Re-mirror clips from scratch
    mirror sync-tree --kind clip --reset

    # Same sequence the server runs at boot
    mirror startup

Exit Codes:
    0    success
    1    configuration error (or unexpected error)
    2    database error
    3    remote source error (Drive / YouTube), including aborted syncs
    4    any other media-mirror error
    130  interrupted
"""

import sys
from pathlib import Path
from typing import Any, Callable

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100

from media_mirror import __version__
from media_mirror.core import (
    AssetSubtype,
    Config,
    ConfigError,
    Database,
    DatabaseError,
    MediaMirrorError,
    MirroredKind,
    ReconciliationAborted,
    RemoteSourceError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from media_mirror.drive import DriveClient, MediaLibrary, Reconciler, UploadRequest
from media_mirror.utils import fill_thumbnail
from media_mirror.youtube import PlaylistClient, PlaylistSync

logger = get_logger(__name__)


TREE_KIND_CHOICE = click.Choice(["media", "clip"], case_sensitive=False)
ALL_KIND_CHOICE = click.Choice(["media", "clip", "playlist"], case_sensitive=False)


class MirrorRuntime:
    """
    Lazily built collaborators for one CLI invocation.

    Pre-built clients may be supplied through the click context object
    ("drive_client", "playlist_client"); otherwise they are created from
    the configuration on first use.
    """

    def __init__(self, config: Config, overrides: dict[str, Any]) -> None:
        self.config = config
        self._overrides = overrides
        self._database: Database | None = None
        self._drive_client: DriveClient | None = overrides.get("drive_client")
        self._playlist_client: PlaylistClient | None = overrides.get("playlist_client")
        self._library: MediaLibrary | None = None

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = Database(self.config.storage.database_path)
        return self._database

    @property
    def drive_client(self) -> DriveClient:
        if self._drive_client is None:
            credentials_file = self.config.drive.credentials_file
            if credentials_file is None:
                raise ConfigError(
                    "'drive.credentials_file' is required for Drive commands",
                    details={"field": "drive.credentials_file"}
                )
            self._drive_client = DriveClient.from_service_account(credentials_file)
        return self._drive_client

    @property
    def playlist_client(self) -> PlaylistClient:
        if self._playlist_client is None:
            if not self.config.youtube.api_key:
                raise ConfigError(
                    "'youtube.api_key' is required for playlist commands",
                    details={"field": "youtube.api_key"}
                )
            self._playlist_client = PlaylistClient(
                self.config.youtube.api_key, timeout=self.config.youtube.timeout
            )
        return self._playlist_client

    @property
    def reconciler(self) -> Reconciler:
        return Reconciler(self.drive_client, self.database, self.config)

    @property
    def playlist_sync(self) -> PlaylistSync:
        return PlaylistSync(self.playlist_client, self.database, self.config)

    @property
    def library(self) -> MediaLibrary:
        if self._library is None:
            self._library = MediaLibrary(self.drive_client, self.database, self.config)
        return self._library

    def close(self) -> None:
        if self._library is not None:
            self._library.close()
        if self._database is not None:
            self._database.close()


def _run(ctx: click.Context, action: Callable[[MirrorRuntime], None]) -> None:
    """
    Load config, set up logging, run one command and map errors to exit codes.

    Args:
        ctx: Click context; ctx.obj carries "config_path" and optional
             client overrides.
        action: The command body.

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    runtime: MirrorRuntime | None = None

    try:
        config = load_config(ctx.obj.get("config_path"))

        config.storage.directory.mkdir(parents=True, exist_ok=True)
        setup_logging(config.storage.directory, verbose=ctx.obj.get("verbose", False))
        logger.info(f"media-mirror {__version__} starting: {ctx.info_name}")

        runtime = MirrorRuntime(config, ctx.obj)
        action(runtime)

        logger.info("media-mirror completed successfully")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(2)

    except (RemoteSourceError, ReconciliationAborted) as e:
        click.echo(f"Remote source error: {e.message}", err=True)
        logger.error(f"Remote source error: {e.message}", exc_info=True)
        sys.exit(3)

    except MediaMirrorError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        if runtime is not None:
            runtime.close()
        shutdown_logging()


# =============================================================================
# Command Group
# =============================================================================

@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml (default: ./config.yaml).",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output on the console.")
@click.version_option(__version__, prog_name="media-mirror")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """
    Mirror Google Drive folders and a YouTube playlist into a local SQLite store.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


# =============================================================================
# Drive Trees
# =============================================================================

@cli.command("sync-tree")
@click.option("--kind", type=TREE_KIND_CHOICE, required=True, help="Which tree to mirror.")
@click.option("--scope", default=None, help="Only this scope tag (default: every configured scope).")
@click.option("--reset", is_flag=True, help="Empty the rows being synced (the scope, or the whole table) first.")
@click.pass_context
def sync_tree(ctx: click.Context, kind: str, scope: str | None, reset: bool) -> None:
    """Mirror Drive folders of one kind into the local store."""
    mirrored_kind = MirroredKind.from_name(kind)

    def action(runtime: MirrorRuntime) -> None:
        reconciler = runtime.reconciler
        if reset:
            reconciler.reset_tree(mirrored_kind, scope)
        results = reconciler.sync_tree(mirrored_kind, scope)
        for result in results:
            logger.info(
                f"{kind} '{result.scope}': {len(result.upserted)} upserted, "
                f"{len(result.removed)} removed"
            )

    _run(ctx, action)


@cli.command("reset-tree")
@click.option("--kind", type=TREE_KIND_CHOICE, required=True, help="Which table to empty.")
@click.option("--scope", default=None, help="Only rows with this scope tag (default: all rows).")
@click.pass_context
def reset_tree(ctx: click.Context, kind: str, scope: str | None) -> None:
    """Empty the local table of one kind. Drive is not touched."""
    mirrored_kind = MirroredKind.from_name(kind)
    _run(ctx, lambda runtime: runtime.reconciler.reset_tree(mirrored_kind, scope))


# =============================================================================
# YouTube Playlist
# =============================================================================

@cli.command("sync-playlist")
@click.option("--reset", is_flag=True, help="Empty the playlist table before syncing.")
@click.pass_context
def sync_playlist(ctx: click.Context, reset: bool) -> None:
    """Mirror the configured YouTube playlist."""
    def action(runtime: MirrorRuntime) -> None:
        playlist_sync = runtime.playlist_sync
        if reset:
            playlist_sync.reset()
        playlist_sync.sync_all()

    _run(ctx, action)


@cli.command("reset-playlist")
@click.pass_context
def reset_playlist(ctx: click.Context) -> None:
    """Empty the playlist table. YouTube is not touched."""
    _run(ctx, lambda runtime: runtime.playlist_sync.reset())


# =============================================================================
# Single Entities
# =============================================================================

@cli.command("upload")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--scope", default=None, help="Scope tag (default: drive.default_scope).")
@click.option("--name", default=None, help="Remote file name (default: local name).")
@click.option("--note", default=None, help="Description stored with the file.")
@click.option(
    "--subtype",
    type=click.Choice(["3D", "360", "NORMAL"], case_sensitive=False),
    default=None,
    help="Asset subtype.",
)
@click.pass_context
def upload(
    ctx: click.Context,
    file: Path,
    scope: str | None,
    name: str | None,
    note: str | None,
    subtype: str | None
) -> None:
    """Upload an image or .glb model to Drive and mirror it."""
    request = UploadRequest(
        scope=scope,
        name=name,
        note=note,
        subtype=AssetSubtype.parse(subtype),
    )

    def action(runtime: MirrorRuntime) -> None:
        asset = runtime.library.upload(file, request)
        click.echo(f"{asset.id}\t{asset.url}")

    _run(ctx, action)


@cli.command("delete")
@click.option("--kind", type=TREE_KIND_CHOICE, default="media", show_default=True)
@click.argument("ids", nargs=-1, required=True)
@click.pass_context
def delete(ctx: click.Context, kind: str, ids: tuple[str, ...]) -> None:
    """Delete entities locally and, in the background, on Drive."""
    mirrored_kind = MirroredKind.from_name(kind)

    def action(runtime: MirrorRuntime) -> None:
        for entity_id in ids:
            runtime.library.delete(mirrored_kind, entity_id)

    _run(ctx, action)


@cli.command("list")
@click.option("--kind", type=ALL_KIND_CHOICE, required=True)
@click.option("--scope", default=None, help="Only this scope tag.")
@click.option("--search", default=None, help="Case-insensitive name filter.")
@click.option("--offset", type=int, default=0, show_default=True)
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def list_entities(
    ctx: click.Context,
    kind: str,
    scope: str | None,
    search: str | None,
    offset: int,
    limit: int
) -> None:
    """List mirrored entities, newest first."""
    mirrored_kind = MirroredKind.from_name(kind)

    def action(runtime: MirrorRuntime) -> None:
        page = runtime.database.find_page(
            mirrored_kind,
            scope=scope.lower() if scope else None,
            search=search,
            offset=offset,
            limit=limit,
        )
        for entity in map(fill_thumbnail, page):
            click.echo(
                f"{entity.id}\t{entity.scope}\t{entity.name}\t{entity.url}\t{entity.thumbnail_url}"
            )

    _run(ctx, action)


# =============================================================================
# Startup Sequence
# =============================================================================

def run_startup(runtime: MirrorRuntime) -> list[str]:
    """
    Replay the boot-time sync sequence.

    Steps:
        1. Sync media for every scope (no reset)
        2. Reset and sync clips
        3. Reset and sync the playlist

    A failing step is logged and the next one still runs.

    Returns:
        Names of the steps that failed.
    """
    def sync_media() -> None:
        runtime.reconciler.sync_tree(MirroredKind.MEDIA)

    def resync_clips() -> None:
        reconciler = runtime.reconciler
        reconciler.reset_tree(MirroredKind.CLIP)
        reconciler.sync_tree(MirroredKind.CLIP)

    def resync_playlist() -> None:
        playlist_sync = runtime.playlist_sync
        playlist_sync.reset()
        playlist_sync.sync_all()

    steps: list[tuple[str, Callable[[], None]]] = [
        ("media", sync_media),
        ("clips", resync_clips),
        ("playlist", resync_playlist),
    ]

    failed = []
    for name, step in steps:
        logger.info(f"Startup sync: {name}")
        try:
            step()
        except (MediaMirrorError, OSError) as e:
            logger.error(f"Startup sync of {name} failed: {e}")
            failed.append(name)
    return failed


@cli.command("startup")
@click.pass_context
def startup(ctx: click.Context) -> None:
    """Run the boot-time sync sequence (media, clips, playlist)."""
    def action(runtime: MirrorRuntime) -> None:
        failed = run_startup(runtime)
        if failed:
            logger.warning(f"Startup finished with failures: {', '.join(failed)}")

    _run(ctx, action)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `mirror` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
