"""
Google Drive mirroring for media-mirror.

This module mirrors the MEDIA and CLIP kinds from scope-tagged Drive
folders and pushes new images back:
    - client: Drive v3 adapter with error mapping
    - models: RemoteEntry and entity factories
    - enumerator: Folder tree walk
    - reconciler: Delta computation and scope sweeps
    - uploader: Content sniffing, create, publish, retry
    - deleter: Background best-effort remote deletes
    - library: Upload / delete / read facade

Usage:
    from media_mirror.drive import DriveClient, Reconciler

    client = DriveClient.from_service_account(config.drive.credentials_file)
    Reconciler(client, database, config).sync_tree(MirroredKind.MEDIA)
"""

from media_mirror.drive.client import DriveClient
from media_mirror.drive.deleter import RemoteDeleteQueue
from media_mirror.drive.enumerator import TreeEnumerator
from media_mirror.drive.library import MediaLibrary
from media_mirror.drive.models import RemoteEntry
from media_mirror.drive.reconciler import ReconcileResult, Reconciler
from media_mirror.drive.uploader import UploadPipeline, UploadRequest, UploadResult

__all__ = [
    "DriveClient",
    "RemoteEntry",
    "TreeEnumerator",
    "Reconciler",
    "ReconcileResult",
    "UploadPipeline",
    "UploadRequest",
    "UploadResult",
    "RemoteDeleteQueue",
    "MediaLibrary",
]
