"""
Infrastructure layer for debsnapgit.

Contains abstractions for external systems:
- SnapshotClient: snapshot archive HTTP access (resolve, fetch index)
- RecordCodec / decompressors: Packages index wire formats
- GitClient / GitArchiveStore: git command execution and the archive tree

These provide clean interfaces that can be mocked for testing.
"""

from .codec import (
    RecordCodec,
    ControlFormatError,
    Decompressor,
    xz_decompressor,
    identity_decompressor,
)
from .git_client import GitClient, GitCommit, GitCommandError, GitArchiveStore, ArchiveStore
from .snapshot_client import SnapshotClient, IndexStream, TimeResolver

__all__ = [
    'RecordCodec',
    'ControlFormatError',
    'Decompressor',
    'xz_decompressor',
    'identity_decompressor',
    'GitClient',
    'GitCommit',
    'GitCommandError',
    'GitArchiveStore',
    'ArchiveStore',
    'SnapshotClient',
    'IndexStream',
    'TimeResolver',
]
