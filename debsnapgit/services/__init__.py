"""
Service layer for debsnapgit.

Contains the logic that orchestrates domain objects and infrastructure:
- parse_and_group: Packages index -> source groups
- ArchiveMaterializer: source groups -> one commit per snapshot
- SnapshotWalker: the resolve/fetch/group/commit loop over time

Services are the primary API for commands to use.
"""

from .grouping import group_packages, parse_and_group
from .materializer import ArchiveMaterializer, commit_message, render_tree
from .walker import SnapshotWalker, WalkerSettings, WalkerState, WalkResult

__all__ = [
    'group_packages',
    'parse_and_group',
    'ArchiveMaterializer',
    'commit_message',
    'render_tree',
    'SnapshotWalker',
    'WalkerSettings',
    'WalkerState',
    'WalkResult',
]
