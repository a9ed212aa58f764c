"""
Fire-and-forget remote deletion.

When a mirrored entity is deleted explicitly, the local row goes first and
the Drive entry is removed in the background. The caller never waits for
or learns about the remote outcome.

Guarantees:
    - At most once: each submitted id is attempted a single time
    - Best effort: failures are logged to the remote failures report,
      never raised and never retried
    - Work still queued when the process dies is lost
    - shutdown(wait=True) drains the queue before returning
"""

from concurrent.futures import Future, ThreadPoolExecutor

from media_mirror.core.logger import get_logger, log_remote_failure
from media_mirror.drive.client import DriveClient


logger = get_logger(__name__)


class RemoteDeleteQueue:
    """
    Single-worker background queue of Drive deletions.

    Example:
        queue = RemoteDeleteQueue(client)
        queue.submit(file_id)
        ...
        queue.shutdown()  # at exit
    """

    def __init__(self, client: DriveClient) -> None:
        self.client = client
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-delete")
        self._closed = False

    def _delete(self, remote_id: str) -> bool:
        try:
            self.client.delete_entry(remote_id)
        except Exception as e:
            # Includes non-Drive errors; nothing may escape the worker
            log_remote_failure(logger, "delete", remote_id, e)
            return False

        logger.debug(f"Deleted remote entry {remote_id}")
        return True

    def submit(self, remote_id: str) -> Future | None:
        """
        Queue a remote deletion and return immediately.

        Returns:
            Future resolving to True on success, False on a logged failure.
            None if the queue is already shut down (the id is dropped).
        """
        if self._closed:
            log_remote_failure(logger, "delete", remote_id, "delete queue is shut down")
            return None
        return self._executor.submit(self._delete, remote_id)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work. With wait=True, finish everything queued first."""
        self._closed = True
        self._executor.shutdown(wait=wait)
