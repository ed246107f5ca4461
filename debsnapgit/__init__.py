"""
debsnapgit - A git history of a Debian binary package index.

debsnapgit walks a snapshot archive (snapshot.debian.org or compatible)
forward in time, fetches the binary Packages index of every snapshot,
regroups it by source package and commits the result, one commit per
snapshot.

Quick Start:
    from debsnapgit import (
        Selector, SnapshotClient, GitArchiveStore,
        ArchiveMaterializer, SnapshotWalker,
    )

    selector = Selector("sid", "main", "amd64")
    with SnapshotClient() as client:
        walker = SnapshotWalker(
            selector,
            resolver=client,
            fetcher=client,
            materializer=ArchiveMaterializer(GitArchiveStore("~/sid-archive")),
        )
        result = walker.run()

On-disk layout:
    <dist>/<component>/<shard>/<source>/binary-<arch>

    where shard is the first four characters of lib* sources and the
    first character of everything else.
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    Selector,
    PackageRecord,
    SourceGroup,
    ArchiveSnapshot,
    format_instant,
    parse_instant,
)

# Infrastructure
from .infra import SnapshotClient, GitClient, GitArchiveStore, RecordCodec

# Services
from .services import (
    parse_and_group,
    ArchiveMaterializer,
    SnapshotWalker,
    WalkerSettings,
    WalkerState,
)

# Errors
from .exit_codes import (
    ArchiveError,
    TransientNetworkError,
    ArchiveProtocolError,
    MissingIndexError,
    IndexParseError,
    MaterializationError,
)

__all__ = [
    # Version
    "__version__",
    # Domain objects
    "Selector",
    "PackageRecord",
    "SourceGroup",
    "ArchiveSnapshot",
    "format_instant",
    "parse_instant",
    # Infrastructure
    "SnapshotClient",
    "GitClient",
    "GitArchiveStore",
    "RecordCodec",
    # Services
    "parse_and_group",
    "ArchiveMaterializer",
    "SnapshotWalker",
    "WalkerSettings",
    "WalkerState",
    # Errors
    "ArchiveError",
    "TransientNetworkError",
    "ArchiveProtocolError",
    "MissingIndexError",
    "IndexParseError",
    "MaterializationError",
]
