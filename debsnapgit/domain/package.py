"""
Package index domain objects for debsnapgit.

Pure objects with no I/O:
- Selector: which distribution/component/architecture is archived
- PackageRecord: one paragraph of a binary Packages index
- SourceGroup: the binary packages built from one source package
- ArchiveSnapshot: every group of one resolved snapshot instant
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping

from debian.debian_support import Version

# Debian policy 5.6.1: lowercase, digits, + - . and at least two characters
SOURCE_NAME = re.compile(r"^[a-z0-9][a-z0-9+.-]+$")


@dataclass(frozen=True)
class Selector:
    """Distribution, component and architecture of one package index."""
    distribution: str
    component: str
    architecture: str

    @property
    def index_path(self) -> str:
        """Path of the binary index below a snapshot root."""
        return (
            f"dists/{self.distribution}/{self.component}/"
            f"binary-{self.architecture}/Packages.xz"
        )

    def __str__(self) -> str:
        return f"{self.distribution}/{self.component}/binary-{self.architecture}"


def source_key(source: str, package: str) -> str:
    """
    Derive the grouping key of a binary package.

    The Source field may carry a version, as in "glibc (2.31-1)"; only
    the first token names the source. An empty Source means the binary
    package is named after its source.

    Raises:
        ValueError: If the key is not a valid Debian source package name
    """
    source = source.strip()
    key = source.split()[0] if source else package
    if not SOURCE_NAME.match(key):
        raise ValueError(f"invalid source package name {key!r}")
    return key


def shard_for(key: str) -> str:
    """Shard directory for a source key: 'libf' for libfoo, 'b' for bash."""
    if key.startswith('lib'):
        return key[:4]
    return key[:1]


@dataclass
class PackageRecord:
    """
    One binary package paragraph.

    `fields` is the decoded paragraph itself (a deb822 paragraph in
    practice) and is what gets encoded back, so field order and values are
    preserved (up to trailing whitespace, which deb822 drops).
    """
    fields: Mapping[str, Any]

    @property
    def package(self) -> str:
        return self.fields.get('Package', '') or ''

    @property
    def version(self) -> str:
        return self.fields.get('Version', '') or ''

    @property
    def source(self) -> str:
        return self.fields.get('Source', '') or ''

    @property
    def source_key(self) -> str:
        return source_key(self.source, self.package)

    def sort_key(self):
        return (self.source_key, self.package, Version(self.version))


@dataclass
class SourceGroup:
    """Records sharing a source key, in package then version order."""
    key: str
    records: List[PackageRecord] = field(default_factory=list)

    def relative_path(self, selector: Selector) -> str:
        """<dist>/<component>/<shard>/<key>/binary-<arch>"""
        return "/".join([
            selector.distribution,
            selector.component,
            shard_for(self.key),
            self.key,
            f"binary-{selector.architecture}",
        ])

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class ArchiveSnapshot:
    """All source groups of one selector at one resolved instant."""
    instant: datetime
    selector: Selector
    groups: List[SourceGroup] = field(default_factory=list)

    @property
    def package_count(self) -> int:
        return sum(len(group) for group in self.groups)
