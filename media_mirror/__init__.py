"""
media-mirror: Mirror Google Drive folders and a YouTube playlist locally.

This package keeps a local SQLite mirror of three remote collections and
pushes new images back to Drive:

    MEDIA     images and 3D models under per-scope Drive folders
    CLIP      mp4 videos under per-scope Drive folders
    PLAYLIST  the videos of one YouTube playlist

Architecture:
    Drive trees (drive/):
        - Walk each scope's folder tree (explicit stack, visited set)
        - Filter leaves by MIME type for the kind
        - Delete local orphans, then upsert the current leaves
        - Optionally publish clips (best effort)

    Playlist (youtube/):
        - Page through the playlist 50 items at a time
        - Fetch details per page and upsert each video
        - No orphan deletion; reset empties the table

    Uploads (drive/uploader.py, drive/library.py):
        - Sniff the content type, reject non-images up front
        - Create on Drive, grant public read, retry with linear backoff
        - Record the new MediaAsset locally

Modules:
    core/       - Configuration, models, database, logging, exceptions
    drive/      - Drive client, enumeration, reconciliation, upload, delete
    youtube/    - Playlist client and sync
    utils/      - Thumbnail, proxy URL and timestamp helpers
    cli.py      - Command-line interface

Usage:
    Command Line:
        mirror sync-tree --kind media
        mirror sync-playlist --reset
        mirror upload photo.jpg --scope jrai --note "Gong festival"
        mirror startup

    Python API:
        from media_mirror.core import load_config, setup_logging, Database, MirroredKind
        from media_mirror.drive import DriveClient, Reconciler

        config = load_config()
        setup_logging(config.storage.directory)
        database = Database(config.storage.database_path)

        client = DriveClient.from_service_account(config.drive.credentials_file)
        Reconciler(client, database, config).sync_tree(MirroredKind.MEDIA)

Dependencies:
    - google-api-python-client, google-auth: Drive v3 access
    - requests: YouTube Data API v3
    - Pillow: Upload content sniffing
    - click, rich-click: CLI framework and colors
    - tqdm: Progress-safe console logging
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "media-mirror"
__license__ = "MIT"

# Convenience imports for common usage
from media_mirror.core import (
    Config,
    ConfigError,
    Database,
    DatabaseError,
    MediaMirrorError,
    MirroredKind,
    RemoteSourceError,
    get_logger,
    load_config,
    setup_logging,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "MirroredKind",
    "setup_logging",
    "get_logger",
    # Exceptions
    "MediaMirrorError",
    "ConfigError",
    "DatabaseError",
    "RemoteSourceError",
]
