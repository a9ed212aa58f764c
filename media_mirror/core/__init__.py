"""
Core module for media-mirror.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - models: Mirrored entity dataclasses and kinds
    - database: Thread-safe SQLite local store
    - logger: Logging system with multiple outputs

Usage:
    from media_mirror.core import (
        Config, load_config,
        Database, MirroredKind,
        setup_logging, get_logger,
        MediaMirrorError, ConfigError, DatabaseError
    )
"""

from media_mirror.core.config import (
    Config,
    DriveConfig,
    ProxyConfig,
    StorageConfig,
    UploadConfig,
    YouTubeConfig,
    load_config,
    parse_config,
)
from media_mirror.core.database import Database
from media_mirror.core.exceptions import (
    ConfigError,
    DatabaseError,
    EntityNotFound,
    MediaMirrorError,
    ReconciliationAborted,
    RemoteEntryNotFound,
    RemoteSourceError,
    TransientNetworkFailure,
    UnsupportedContentType,
    UploadFailed,
)
from media_mirror.core.logger import (
    get_logger,
    log_remote_failure,
    setup_logging,
    shutdown_logging,
)
from media_mirror.core.models import (
    AssetSubtype,
    ClipAsset,
    MediaAsset,
    MirroredKind,
    PlaylistVideo,
)

__all__ = [
    # Config
    "Config",
    "DriveConfig",
    "YouTubeConfig",
    "StorageConfig",
    "ProxyConfig",
    "UploadConfig",
    "load_config",
    "parse_config",
    # Database
    "Database",
    # Models
    "MirroredKind",
    "AssetSubtype",
    "MediaAsset",
    "ClipAsset",
    "PlaylistVideo",
    # Exceptions
    "MediaMirrorError",
    "ConfigError",
    "DatabaseError",
    "RemoteSourceError",
    "TransientNetworkFailure",
    "RemoteEntryNotFound",
    "UnsupportedContentType",
    "UploadFailed",
    "ReconciliationAborted",
    "EntityNotFound",
    # Logger
    "setup_logging",
    "get_logger",
    "log_remote_failure",
    "shutdown_logging",
]
