"""
Snapshot walker for debsnapgit.

Walks forward from (now - lookback) to now in fixed steps. Every step is
re-resolved to a real snapshot instant strictly after the previous one;
each such instant is fetched, regrouped and committed. The instant the
walk starts from is only a reference point and is never committed.

States:
    INIT -> RESOLVING -> FETCHING -> GROUPING -> MATERIALIZING -> ADVANCING
    ADVANCING -> RESOLVING | DONE
    any -> FAILED
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, ContextManager, BinaryIO, List, Optional, Protocol, Tuple

from ..domain.instant import format_instant, to_utc
from ..domain.package import ArchiveSnapshot, Selector
from ..exit_codes import ArchiveError
from ..infra.codec import RecordCodec
from ..infra.snapshot_client import TimeResolver
from .grouping import parse_and_group
from .materializer import ArchiveMaterializer

logger = logging.getLogger(__name__)


class IndexFetcher(Protocol):
    """Opens the decompressed Packages index of a resolved snapshot."""

    def fetch_index(self, instant: datetime, selector: Selector) -> ContextManager[BinaryIO]:
        ...


class WalkerState(Enum):
    """State of a SnapshotWalker."""
    INIT = "init"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    GROUPING = "grouping"
    MATERIALIZING = "materializing"
    ADVANCING = "advancing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WalkerSettings:
    """How far back to start and how far to step."""
    step: timedelta = timedelta(hours=6)
    lookback: timedelta = timedelta(days=30)
    max_snapshots: Optional[int] = None


@dataclass
class WalkResult:
    """Outcome of a walk: the committed snapshots in order."""
    start: datetime
    end: datetime
    commits: List[Tuple[datetime, str]] = field(default_factory=list)

    def to_dict(self):
        return {
            'start': format_instant(self.start),
            'end': format_instant(self.end),
            'snapshots': len(self.commits),
            'commits': [
                {'instant': format_instant(instant), 'commit': commit}
                for instant, commit in self.commits
            ],
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotWalker:
    """
    Drives resolve -> fetch -> group -> materialize over a time range.

    Example:
        walker = SnapshotWalker(selector, client, client, materializer)
        result = walker.run()

    Any error halts the walk: the state becomes FAILED and the error is
    re-raised unchanged. There is no retry and no skipping.
    """

    def __init__(
        self,
        selector: Selector,
        resolver: TimeResolver,
        fetcher: IndexFetcher,
        materializer: ArchiveMaterializer,
        settings: Optional[WalkerSettings] = None,
        clock: Callable[[], datetime] = utc_now,
        codec: Optional[RecordCodec] = None,
    ):
        self.selector = selector
        self.resolver = resolver
        self.fetcher = fetcher
        self.materializer = materializer
        self.settings = settings or WalkerSettings()
        self.clock = clock
        self.codec = codec or RecordCodec()
        self.state = WalkerState.INIT
        self.current: Optional[datetime] = None
        self.end: Optional[datetime] = None

    def run(self) -> WalkResult:
        """
        Walk from the resolved start to the end time captured at INIT.

        Returns:
            WalkResult listing every committed snapshot

        Raises:
            ArchiveError: The first error encountered
        """
        try:
            result = self._init()
            while True:
                instant = self._advance()
                if instant is None:
                    break
                result.commits.append((instant, self._process(instant)))
                limit = self.settings.max_snapshots
                if limit is not None and len(result.commits) >= limit:
                    logger.info(f"Stopping after {limit} snapshot(s)")
                    break
        except ArchiveError as e:
            logger.error(f"Walk failed in state {self.state.value}: {e}")
            self.state = WalkerState.FAILED
            raise
        except BaseException:
            logger.debug(f"Walk interrupted in state {self.state.value}")
            self.state = WalkerState.FAILED
            raise
        self.state = WalkerState.DONE
        logger.info(
            f"Walk done: {len(result.commits)} snapshot(s) committed "
            f"between {format_instant(result.start)} and {format_instant(result.end)}"
        )
        return result

    def _init(self) -> WalkResult:
        self.state = WalkerState.INIT
        self.end = to_utc(self.clock())
        start = self.resolver.resolve(self.end - self.settings.lookback)
        self.current = start
        logger.info(
            f"Walking {self.selector} from {format_instant(start)} "
            f"to {format_instant(self.end)} every {self.settings.step}"
        )
        self.materializer.prepare()
        return WalkResult(start=start, end=self.end)

    def _advance(self) -> Optional[datetime]:
        """
        Find the next snapshot strictly after the current one.

        Returns:
            The next instant, or None once the end has been passed
        """
        self.state = WalkerState.ADVANCING
        target = self.current + self.settings.step
        while True:
            if target > self.end:
                logger.debug(f"Target {format_instant(target)} is past the end")
                return None
            self.state = WalkerState.RESOLVING
            candidate = self.resolver.resolve(target)
            if candidate > self.current:
                if candidate > self.end:
                    logger.debug(f"Next snapshot {format_instant(candidate)} is past the end")
                    return None
                self.current = candidate
                return candidate
            # Still inside the current snapshot's epoch
            target += self.settings.step

    def _process(self, instant: datetime) -> str:
        logger.info(f"Working on snapshot {format_instant(instant)}")

        self.state = WalkerState.FETCHING
        with self.fetcher.fetch_index(instant, self.selector) as stream:
            self.state = WalkerState.GROUPING
            groups = parse_and_group(stream, self.codec)

        snapshot = ArchiveSnapshot(instant=instant, selector=self.selector, groups=groups)

        self.state = WalkerState.MATERIALIZING
        return self.materializer.materialize(snapshot)
