"""
Exception classes for media-mirror.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus a details dictionary
so that failures can be logged with enough context to act on.

Exception Hierarchy:
    MediaMirrorError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite local store issues
        RemoteSourceError - Drive / YouTube API issues
            TransientNetworkFailure - Timeouts, connection resets, 429/5xx
            RemoteEntryNotFound - Remote id no longer exists
        UnsupportedContentType - Upload rejected before any network call
        UploadFailed - Upload retries exhausted
        ReconciliationAborted - Enumeration or detail fetch failed mid-sync
        EntityNotFound - Read-path miss on the local store

Best-effort failures (permission grants, asynchronous remote deletes) are
never raised. They are reported through core.logger.log_remote_failure().
"""


class MediaMirrorError(Exception):
    """
    Base exception for all media-mirror errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., remote id, scope).

    Example:
        try:
            reconciler.sync_tree(MirroredKind.MEDIA)
        except MediaMirrorError as e:
            logger.error(f"Sync failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'remote_id': Drive file id or YouTube video id
                     - 'folder_id': Drive folder being listed
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(MediaMirrorError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required sections missing (drive, storage)
        - A sync was requested for a scope with no configured folder
    """
    pass


class DatabaseError(MediaMirrorError):
    """
    Raised when there's an issue with the SQLite local store.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Storage directory missing or not writable
        - Database file corrupted
        - Schema version mismatch
    """
    pass


class RemoteSourceError(MediaMirrorError):
    """
    Raised when a remote source (Drive or YouTube) call fails.

    Enumeration and reconciliation treat every RemoteSourceError as fatal
    for the current pass. Only the upload pipeline retries.

    Example:
        raise RemoteSourceError(
            "Failed to list folder: 403 Forbidden",
            details={'folder_id': folder_id, 'http_status': 403}
        )
    """
    pass


class TransientNetworkFailure(RemoteSourceError):
    """
    Raised for failures that may succeed when retried.

    Covers socket timeouts, connection resets, HTTP 429 and 5xx responses.

    Attributes:
        is_timeout: True if the failure was a timeout. The upload pipeline
                    backs off longer after timeouts than after other errors.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_timeout: bool = False
    ) -> None:
        super().__init__(message, details)
        self.is_timeout = is_timeout


class RemoteEntryNotFound(RemoteSourceError):
    """
    Raised when a delete or detail fetch targets a remote id that is gone.
    """
    pass


class UnsupportedContentType(MediaMirrorError):
    """
    Raised when an upload's content type is outside the allowed image set.

    Detection happens before any network call. Never retried.

    Example:
        raise UnsupportedContentType(
            "Only image files are allowed. Detected type: application/pdf",
            details={'file_path': '/tmp/doc.pdf', 'mime_type': 'application/pdf'}
        )
    """
    pass


class UploadFailed(MediaMirrorError):
    """
    Raised when every upload attempt has failed.

    Attributes:
        attempts: Number of attempts made.
        last_cause: The exception raised by the final attempt.
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_cause: BaseException | None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.attempts = attempts
        self.last_cause = last_cause


class ReconciliationAborted(MediaMirrorError):
    """
    Raised when a sync pass could not complete.

    Local mutations applied before the failure are NOT rolled back; every
    step is idempotent so re-running the sync converges.

    Attributes:
        failures: Mapping of scope (or page marker) to the underlying error.
                  A single-pass abort has exactly one entry.
    """

    def __init__(
        self,
        message: str,
        failures: dict[str, BaseException] | None = None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.failures = failures or {}


class EntityNotFound(MediaMirrorError):
    """
    Raised when a read-path lookup misses the local store.
    """
    pass
