"""
Domain layer for debsnapgit.

Contains pure domain objects with no I/O or side effects:
- Snapshot instants: canonical YYYYMMDDThhmmssZ formatting and parsing
- Selector: distribution/component/architecture being archived
- PackageRecord, SourceGroup, ArchiveSnapshot: the regrouped index
"""

from .instant import (
    INSTANT_FORMAT,
    format_instant,
    parse_instant,
    parse_duration,
    parse_timespec,
    to_utc,
)
from .package import (
    Selector,
    PackageRecord,
    SourceGroup,
    ArchiveSnapshot,
    source_key,
    shard_for,
)

__all__ = [
    'INSTANT_FORMAT',
    'format_instant',
    'parse_instant',
    'parse_duration',
    'parse_timespec',
    'to_utc',
    'Selector',
    'PackageRecord',
    'SourceGroup',
    'ArchiveSnapshot',
    'source_key',
    'shard_for',
]
