"""
Materialization of archive snapshots into a versioned tree.

Each source group becomes one file at
<dist>/<component>/<shard>/<source>/binary-<arch> holding its package
paragraphs, and each snapshot becomes one commit of the whole tree.
"""

import logging
from typing import Iterator, Optional, Tuple

from ..domain.instant import format_instant
from ..domain.package import ArchiveSnapshot
from ..infra.codec import RecordCodec
from ..infra.git_client import ArchiveStore

logger = logging.getLogger(__name__)


def commit_message(snapshot: ArchiveSnapshot) -> str:
    """Commit message recording the snapshot instant and selector."""
    return f"snapshot at {format_instant(snapshot.instant)}\n\n{snapshot.selector}\n"


def render_tree(snapshot: ArchiveSnapshot, codec: Optional[RecordCodec] = None) -> Iterator[Tuple[str, bytes]]:
    """Yield (relative path, file content) for every source group, in order."""
    codec = codec or RecordCodec()
    for group in snapshot.groups:
        yield group.relative_path(snapshot.selector), codec.encode(r.fields for r in group.records)


class ArchiveMaterializer:
    """Writes snapshots into an ArchiveStore, one commit each."""

    def __init__(self, store: ArchiveStore, codec: Optional[RecordCodec] = None):
        self.store = store
        self.codec = codec or RecordCodec()

    def prepare(self) -> None:
        """Make sure the store exists (idempotent)."""
        self.store.ensure_repository()

    def materialize(self, snapshot: ArchiveSnapshot) -> str:
        """
        Replace the tree with the snapshot and commit it.

        Returns:
            Identifier of the new commit

        Raises:
            MaterializationError: If the store cannot be written or committed
        """
        commit = self.store.commit_snapshot(
            render_tree(snapshot, self.codec),
            commit_message(snapshot),
            snapshot.instant,
        )
        logger.info(
            f"Committed {format_instant(snapshot.instant)}: "
            f"{len(snapshot.groups)} sources, {snapshot.package_count} packages "
            f"({commit[:12]})"
        )
        return commit
