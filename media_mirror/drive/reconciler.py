"""
Drive tree reconciliation for media-mirror.

Brings one kind's local table in line with the leaves currently under the
configured Drive folders.

One pass (kind, scope):
    1. Enumerate every leaf under the scope's folder
    2. Keep only leaves whose MIME type belongs to the kind
    3. removed = local ids (with this scope tag) - remote ids
    4. Delete removed rows, then upsert one fresh entity per remaining leaf
    5. CLIP only, when drive.publish_clips is set: grant public read on
       every clip (best effort)

A full sweep (no scope named) that succeeds everywhere then drops rows
whose id no configured folder returned, whatever their scope tag.

Passes are idempotent: running one twice against an unchanged remote tree
leaves the table as the first run did. Mutations applied before a failure
are not rolled back; the next run converges.

Usage:
    reconciler = Reconciler(client, database, config)
    reconciler.sync_tree(MirroredKind.MEDIA)            # every media scope
    reconciler.sync_tree(MirroredKind.CLIP, "ede")      # one scope
"""

from dataclasses import dataclass

from media_mirror.core.config import Config
from media_mirror.core.database import Database
from media_mirror.core.exceptions import (
    ConfigError,
    ReconciliationAborted,
    RemoteSourceError,
)
from media_mirror.core.logger import get_logger, log_remote_failure
from media_mirror.core.models import MirroredEntity, MirroredKind
from media_mirror.drive.client import DriveClient
from media_mirror.drive.enumerator import TreeEnumerator
from media_mirror.drive.models import (
    MIME_TYPES_BY_KIND,
    RemoteEntry,
    clip_asset_from_entry,
    media_asset_from_entry,
)


logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of one (kind, scope) pass.

    Attributes:
        kind: Kind reconciled.
        scope: Scope tag of the pass.
        upserted: Ids written (inserted or overwritten).
        removed: Ids deleted as orphans.
    """
    kind: MirroredKind
    scope: str
    upserted: frozenset[str]
    removed: frozenset[str]


class Reconciler:
    """
    Applies Drive -> local deltas for the MEDIA and CLIP kinds.

    Callers must not run two passes over the same kind concurrently.
    """

    def __init__(self, client: DriveClient, database: Database, config: Config) -> None:
        self.client = client
        self.database = database
        self.config = config
        self.enumerator = TreeEnumerator(client, page_size=config.drive.page_size)

    # =========================================================================
    # Delta
    # =========================================================================

    def _build_entity(self, kind: MirroredKind, entry: RemoteEntry, scope: str) -> MirroredEntity:
        base_url = self.config.proxy.base_url
        if kind is MirroredKind.MEDIA:
            return media_asset_from_entry(entry, scope, base_url)
        return clip_asset_from_entry(entry, scope, base_url)

    def reconcile(
        self,
        kind: MirroredKind,
        scope: str,
        remote_leaves: list[RemoteEntry]
    ) -> ReconcileResult:
        """
        Apply the delta between remote leaves and the local rows of one scope.

        Args:
            kind: MEDIA or CLIP.
            scope: Scope tag stamped on every upserted entity.
            remote_leaves: Output of TreeEnumerator.list_all_leaves().

        Returns:
            ReconcileResult with the upserted and removed id sets.

        Behavior:
            1. Filter leaves to the kind's MIME set
            2. Read local ids carrying this scope tag
            3. Delete local - remote (skipped if empty)
            4. Upsert every filtered leaf (skipped if empty)
            5. Publish clips if configured
        """
        if kind not in MIME_TYPES_BY_KIND:
            raise ValueError(f"{kind.name} is not mirrored from a Drive tree")

        accepted = MIME_TYPES_BY_KIND[kind]
        leaves = [entry for entry in remote_leaves if entry.mime_type in accepted]
        ignored = len(remote_leaves) - len(leaves)
        if ignored:
            logger.debug(f"Ignoring {ignored} {kind.config_key} entries with other MIME types")

        remote_ids = {entry.id for entry in leaves}
        local_ids = self.database.find_all_ids(kind, scope=scope)
        removed = local_ids - remote_ids

        if removed:
            self.database.delete_all_by_ids(kind, removed)
            logger.info(f"Removed {len(removed)} {kind.config_key} orphans from scope '{scope}'")

        if leaves:
            self.database.upsert_all(kind, [self._build_entity(kind, entry, scope) for entry in leaves])
            logger.info(f"Upserted {len(leaves)} {kind.config_key} entries for scope '{scope}'")

        if kind is MirroredKind.CLIP and self.config.drive.publish_clips:
            self._publish_all(remote_ids)

        return ReconcileResult(
            kind=kind,
            scope=scope,
            upserted=frozenset(remote_ids),
            removed=frozenset(removed),
        )

    def _publish_all(self, remote_ids: set[str]) -> None:
        for remote_id in remote_ids:
            try:
                self.client.set_public(remote_id)
            except RemoteSourceError as e:
                log_remote_failure(logger, "publish", remote_id, e)

    # =========================================================================
    # Scope Sweeps
    # =========================================================================

    def _folders(self, kind: MirroredKind) -> dict[str, str]:
        if kind not in MIME_TYPES_BY_KIND:
            raise ValueError(f"{kind.name} is not mirrored from a Drive tree")
        return self.config.drive.folders_for(kind.config_key)

    def sync_scope(self, kind: MirroredKind, scope: str, folder_id: str) -> ReconcileResult:
        """
        Enumerate one folder and reconcile it under a scope tag.

        Raises:
            ReconciliationAborted: If enumeration fails.
        """
        logger.info(f"Syncing {kind.config_key} scope '{scope}' from folder {folder_id}")
        try:
            leaves = self.enumerator.list_all_leaves(folder_id)
        except RemoteSourceError as e:
            raise ReconciliationAborted(
                f"Enumeration of {kind.config_key} scope '{scope}' failed: {e.message}",
                failures={scope: e},
                details={"folder_id": folder_id, "scope": scope}
            ) from e

        return self.reconcile(kind, scope, leaves)

    def sync_tree(self, kind: MirroredKind, scope: str | None = None) -> list[ReconcileResult]:
        """
        Sync one scope, or every configured scope of a kind.

        Args:
            kind: MEDIA or CLIP.
            scope: Scope tag, or None to sweep every configured scope in
                   configuration order.

        Returns:
            One ReconcileResult per completed pass.

        Raises:
            ConfigError: If a named scope has no configured folder.
            ReconciliationAborted: If any pass failed. In a sweep, the other
                                   scopes still run and all failures are
                                   collected into one exception.

        A sweep in which every scope succeeded also deletes rows no
        configured folder holds, so the table ends up equal to the union
        of the remote trees.
        """
        folders = self._folders(kind)

        if scope is not None:
            tag = scope.strip().lower()
            if tag not in folders:
                raise ConfigError(
                    f"No {kind.config_key} folder configured for scope '{scope}'",
                    details={"kind": kind.config_key, "scope": scope, "known": list(folders)}
                )
            return [self.sync_scope(kind, tag, folders[tag])]

        results: list[ReconcileResult] = []
        failures: dict[str, BaseException] = {}
        remote_ids: set[str] = set()

        for tag, folder_id in folders.items():
            try:
                result = self.sync_scope(kind, tag, folder_id)
                results.append(result)
                remote_ids.update(result.upserted)
            except ReconciliationAborted as e:
                logger.error(e.message)
                failures[tag] = e.failures.get(tag, e)
            except RemoteSourceError as e:
                logger.error(f"Sync of {kind.config_key} scope '{tag}' failed: {e.message}")
                failures[tag] = e

        if failures:
            raise ReconciliationAborted(
                f"{len(failures)} of {len(folders)} {kind.config_key} scopes failed: "
                f"{', '.join(failures)}",
                failures=failures,
                details={"kind": kind.config_key, "completed": [r.scope for r in results]}
            )

        self._remove_unscoped(kind, remote_ids)
        return results

    def _remove_unscoped(self, kind: MirroredKind, remote_ids: set[str]) -> int:
        """
        After a complete sweep, delete rows no configured folder holds.

        Catches rows whose scope tag has no folder (or lost it in config).
        Only called when every scope succeeded.
        """
        stale = self.database.find_all_ids(kind) - remote_ids
        if not stale:
            return 0
        removed = self.database.delete_all_by_ids(kind, stale)
        logger.info(f"Removed {removed} {kind.config_key} rows outside every configured scope")
        return removed

    def reset_tree(self, kind: MirroredKind, scope: str | None = None) -> int:
        """
        Delete local rows of a kind. The remote tree is untouched.

        Args:
            kind: MEDIA or CLIP.
            scope: Only delete rows with this scope tag. None empties the table.

        Returns:
            Number of rows deleted.
        """
        self._folders(kind)
        if scope is None:
            removed = self.database.delete_all(kind)
            logger.info(f"Reset {kind.config_key}: removed {removed} rows")
            return removed

        tag = scope.strip().lower()
        removed = self.database.delete_all_by_ids(kind, self.database.find_all_ids(kind, scope=tag))
        logger.info(f"Reset {kind.config_key} scope '{tag}': removed {removed} rows")
        return removed
