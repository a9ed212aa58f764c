"""
Drive folder tree enumeration.

Walks a folder and everything below it, collecting every non-folder entry.

Walk:
    - Depth-first over an explicit stack, so deep trees cannot hit the
      interpreter's recursion limit
    - Each folder is listed once; a visited set guards against cycles and
      against folders reachable through several parents
    - A leaf reachable through several parents is returned once
    - Every page of every folder is consumed before the folder is done

There is no retry. Any listing error propagates and the walk is abandoned.
"""

from media_mirror.core.logger import get_logger
from media_mirror.drive.client import DriveClient
from media_mirror.drive.models import RemoteEntry


logger = get_logger(__name__)


class TreeEnumerator:
    """
    Collects every leaf under a Drive folder.

    Attributes:
        client: DriveClient (or anything with the same list_children signature).
        page_size: Entries requested per listing page.
    """

    def __init__(self, client: DriveClient, page_size: int = 200) -> None:
        self.client = client
        self.page_size = page_size

    def list_children(self, folder_id: str) -> list[RemoteEntry]:
        """Return every direct child of a folder, following pagination."""
        children: list[RemoteEntry] = []
        page_token: str | None = None

        while True:
            entries, page_token = self.client.list_children(
                folder_id, page_token=page_token, page_size=self.page_size
            )
            children.extend(entries)
            if not page_token:
                return children

    def list_all_leaves(self, root_folder_id: str) -> list[RemoteEntry]:
        """
        Return every non-folder entry reachable from a root folder.

        Args:
            root_folder_id: Drive folder id to start from.

        Returns:
            Leaves in discovery order. No ordering is guaranteed across folders.

        Raises:
            RemoteSourceError: Propagated from the first failing listing.
        """
        leaves: list[RemoteEntry] = []
        seen_leaves: set[str] = set()
        visited: set[str] = set()
        stack = [root_folder_id]

        while stack:
            folder_id = stack.pop()
            if folder_id in visited:
                continue
            visited.add(folder_id)

            subfolders = []
            for entry in self.list_children(folder_id):
                if entry.is_folder:
                    if entry.id not in visited:
                        subfolders.append(entry.id)
                elif entry.id not in seen_leaves:
                    seen_leaves.add(entry.id)
                    leaves.append(entry)

            # Reversed so the first listed subfolder is walked first
            stack.extend(reversed(subfolders))

        logger.debug(
            f"Enumerated {len(leaves)} leaves in {len(visited)} folders under {root_folder_id}"
        )
        return leaves
