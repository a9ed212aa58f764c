"""
Configuration management for media-mirror.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Drive credentials and the scope -> folder mapping per mirrored kind
    - YouTube Data API key and the playlist to mirror
    - Storage directory for the SQLite mirror and log files
    - Base URL of the content proxy used in mirrored URLs
    - Upload retry policy

Configuration File Location:
    The config.yaml file is looked up in the current working directory
    unless an explicit path is given.

Example config.yaml:
    drive:
      credentials_file: "service-account.json"
      scopes:
        media:
          ede: "1AbC..."
          jrai: "1DeF..."
          mnong: "1GhI..."
        clip:
          ede: "1JkL..."
      default_scope: ede

    youtube:
      api_key: "AIza..."
      playlist_url: "https://www.youtube.com/playlist?list=PL..."

    storage:
      directory: "~/.media-mirror"

    proxy:
      base_url: "http://localhost:9090/api/ggdrive"

    upload:
      max_attempts: 4
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from media_mirror.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_PROXY_BASE_URL = "http://localhost:9090/api/ggdrive"
DEFAULT_PAGE_SIZE = 200
DEFAULT_MAX_ATTEMPTS = 4

# Kinds mirrored from Drive folders, as they appear under drive.scopes
TREE_KINDS = ("media", "clip")


@dataclass(frozen=True)
class DriveConfig:
    """
    Drive configuration.

    Attributes:
        credentials_file: Service-account JSON used to build the Drive client.
                          None when the client is supplied by the caller.
        scopes: Per-kind mapping of scope tag -> Drive folder id.
                Keys are "media" and "clip". Insertion order is the order
                in which an unspecified-scope sync sweeps the scopes.
        default_scope: Scope used when an upload names an unknown scope.
        page_size: Page size for folder listings.
        publish_clips: Grant public-read on clips during sync (best effort).
    """
    credentials_file: Path | None
    scopes: dict[str, dict[str, str]]
    default_scope: str
    page_size: int = DEFAULT_PAGE_SIZE
    publish_clips: bool = True

    def folders_for(self, kind: str) -> dict[str, str]:
        """Return the scope -> folder mapping for a kind ("media" or "clip")."""
        return self.scopes.get(kind, {})


@dataclass(frozen=True)
class YouTubeConfig:
    """
    YouTube playlist configuration.

    Attributes:
        api_key: YouTube Data API v3 key. Empty when the playlist mirror is unused.
        playlist_url: Full playlist URL containing a list=... parameter.
        default_scope: Scope tag stamped on every playlist video.
        timeout: Request timeout in seconds.
    """
    api_key: str = ""
    playlist_url: str = ""
    default_scope: str = "ede"
    timeout: float = 30.0


@dataclass(frozen=True)
class StorageConfig:
    """
    Storage configuration.

    Attributes:
        directory: Directory holding mirror.db and the logs subdirectory.
                   ~ is expanded. Created on demand.
    """
    directory: Path

    @property
    def database_path(self) -> Path:
        return self.directory / "mirror.db"


@dataclass(frozen=True)
class ProxyConfig:
    """
    Content proxy configuration.

    Attributes:
        base_url: Base of the locally hosted proxy. Mirrored URLs take the
                  form {base_url}/proxy?id={remote_id}&name={name}.
    """
    base_url: str = DEFAULT_PROXY_BASE_URL


@dataclass(frozen=True)
class UploadConfig:
    """
    Upload retry policy.

    Attributes:
        max_attempts: Attempts before giving up. Default 4.
        timeout_backoff: Seconds multiplied by the attempt number after a timeout.
        error_backoff: Seconds multiplied by the attempt number after any other error.
    """
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    timeout_backoff: float = 3.0
    error_backoff: float = 1.0


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and passed explicitly to every component that
    needs it. Nothing reads configuration from ambient state.
    """
    drive: DriveConfig
    storage: StorageConfig
    youtube: YouTubeConfig = field(default_factory=YouTubeConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required sections, or contains invalid values.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return parse_config(raw_config, base_dir=config_path.parent)


def parse_config(raw_config: dict[str, Any], base_dir: Path | None = None) -> Config:
    """
    Build a Config from an already-parsed dictionary.

    Args:
        raw_config: Dictionary with the same structure as config.yaml.
        base_dir: Directory relative paths (credentials_file) are resolved against.

    Raises:
        ConfigError: If validation fails.
    """
    _validate_config(raw_config)

    base_dir = base_dir or Path.cwd()

    return Config(
        drive=_parse_drive_config(raw_config["drive"], base_dir),
        storage=_parse_storage_config(raw_config["storage"]),
        youtube=_parse_youtube_config(_optional_section(raw_config, "youtube")),
        proxy=_parse_proxy_config(_optional_section(raw_config, "proxy")),
        upload=_parse_upload_config(_optional_section(raw_config, "upload")),
    )


def _is_int(value: Any) -> bool:
    # YAML booleans are ints in Python
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_config(raw_config: dict[str, Any]) -> None:
    required_sections = ["drive", "storage"]

    for section in required_sections:
        if section not in raw_config:
            raise ConfigError(
                f"Missing required section: '{section}'",
                details={"missing_section": section}
            )

        if not isinstance(raw_config[section], dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _optional_section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _parse_drive_config(drive_section: dict[str, Any], base_dir: Path) -> DriveConfig:
    """
    Parse and validate the drive configuration section.

    Scope tags are lower-cased. Folder order inside each kind is preserved.
    """
    raw_scopes = drive_section.get("scopes")
    if not isinstance(raw_scopes, dict) or not raw_scopes:
        raise ConfigError(
            "'drive.scopes' must map 'media' and/or 'clip' to scope -> folder dictionaries",
            details={"field": "drive.scopes"}
        )

    scopes: dict[str, dict[str, str]] = {}
    for kind, mapping in raw_scopes.items():
        if kind not in TREE_KINDS:
            raise ConfigError(
                f"Unknown kind under 'drive.scopes': '{kind}'",
                details={"field": f"drive.scopes.{kind}", "allowed": list(TREE_KINDS)}
            )
        if not isinstance(mapping, dict):
            raise ConfigError(
                f"'drive.scopes.{kind}' must be a dictionary",
                details={"field": f"drive.scopes.{kind}"}
            )

        folders: dict[str, str] = {}
        for tag, folder_id in mapping.items():
            if not isinstance(folder_id, str) or not folder_id.strip():
                raise ConfigError(
                    f"'drive.scopes.{kind}.{tag}' must be a non-empty folder id",
                    details={"field": f"drive.scopes.{kind}.{tag}"}
                )
            folders[str(tag).strip().lower()] = folder_id.strip()
        scopes[kind] = folders

    media_scopes = scopes.get("media", {})
    default_scope = drive_section.get("default_scope")
    if default_scope is None:
        if not media_scopes:
            raise ConfigError(
                "'drive.default_scope' is required when no media scopes are configured",
                details={"field": "drive.default_scope"}
            )
        default_scope = next(iter(media_scopes))
    default_scope = str(default_scope).strip().lower()

    if media_scopes and default_scope not in media_scopes:
        raise ConfigError(
            f"'drive.default_scope' ({default_scope}) has no media folder",
            details={"field": "drive.default_scope", "value": default_scope}
        )

    page_size = drive_section.get("page_size", DEFAULT_PAGE_SIZE)
    if not _is_int(page_size) or not 1 <= page_size <= 1000:
        raise ConfigError(
            "'drive.page_size' must be an integer between 1 and 1000",
            details={"field": "drive.page_size", "value": page_size}
        )

    credentials_file = None
    raw_credentials = drive_section.get("credentials_file")
    if raw_credentials is not None:
        if not isinstance(raw_credentials, str) or not raw_credentials.strip():
            raise ConfigError(
                "'drive.credentials_file' must be a string path or null",
                details={"field": "drive.credentials_file"}
            )
        credentials_file = Path(raw_credentials.strip()).expanduser()
        if not credentials_file.is_absolute():
            credentials_file = (base_dir / credentials_file).resolve()

    publish_clips = drive_section.get("publish_clips", True)
    if not isinstance(publish_clips, bool):
        raise ConfigError(
            "'drive.publish_clips' must be true or false",
            details={"field": "drive.publish_clips", "value": publish_clips}
        )

    return DriveConfig(
        credentials_file=credentials_file,
        scopes=scopes,
        default_scope=default_scope,
        page_size=page_size,
        publish_clips=publish_clips,
    )


def _parse_youtube_config(youtube_section: dict[str, Any]) -> YouTubeConfig:
    api_key = youtube_section.get("api_key") or ""
    playlist_url = youtube_section.get("playlist_url") or ""

    if not isinstance(api_key, str) or not isinstance(playlist_url, str):
        raise ConfigError(
            "'youtube.api_key' and 'youtube.playlist_url' must be strings",
            details={"field": "youtube"}
        )

    timeout = youtube_section.get("timeout", 30.0)
    if not _is_number(timeout) or timeout <= 0:
        raise ConfigError(
            "'youtube.timeout' must be a positive number",
            details={"field": "youtube.timeout", "value": timeout}
        )

    return YouTubeConfig(
        api_key=api_key.strip(),
        playlist_url=playlist_url.strip(),
        default_scope=str(youtube_section.get("default_scope", "ede")).strip().lower(),
        timeout=float(timeout),
    )


def _parse_storage_config(storage_section: dict[str, Any]) -> StorageConfig:
    """
    Expands ~ and makes the directory absolute. Does NOT create it.
    """
    directory = storage_section.get("directory", "")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'storage.directory' must be a non-empty string",
            details={"field": "storage.directory"}
        )

    return StorageConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_proxy_config(proxy_section: dict[str, Any]) -> ProxyConfig:
    base_url = proxy_section.get("base_url", DEFAULT_PROXY_BASE_URL)
    if not isinstance(base_url, str) or not base_url.strip():
        raise ConfigError(
            "'proxy.base_url' must be a non-empty string",
            details={"field": "proxy.base_url"}
        )
    return ProxyConfig(base_url=base_url.strip().rstrip("/"))


def _parse_upload_config(upload_section: dict[str, Any]) -> UploadConfig:
    max_attempts = upload_section.get("max_attempts", DEFAULT_MAX_ATTEMPTS)
    if not _is_int(max_attempts) or max_attempts < 1:
        raise ConfigError(
            "'upload.max_attempts' must be a positive integer",
            details={"field": "upload.max_attempts", "value": max_attempts}
        )

    backoffs = {}
    for name, default in (("timeout_backoff", 3.0), ("error_backoff", 1.0)):
        value = upload_section.get(name, default)
        if not _is_number(value) or value < 0:
            raise ConfigError(
                f"'upload.{name}' must be a non-negative number",
                details={"field": f"upload.{name}", "value": value}
            )
        backoffs[name] = float(value)

    return UploadConfig(max_attempts=max_attempts, **backoffs)
