"""
Snapshot archive client infrastructure for debsnapgit.

Provides access to a snapshot.debian.org style archive:
- Resolve an arbitrary time to the nearest published snapshot instant
- Stream the binary Packages index of a resolved snapshot

The archive has no listing API. Resolution sends a HEAD request for the
requested time with redirects disabled; the archive answers with a 301
whose Location names the real snapshot, e.g.

    https://snapshot.debian.org/archive/debian/20210801T023234Z/
"""

import logging
from datetime import datetime
from typing import BinaryIO, Optional, Protocol
from urllib.parse import urlparse

import requests

from ..domain.instant import format_instant, parse_instant, to_utc
from ..domain.package import Selector
from ..exit_codes import (
    ArchiveProtocolError,
    ConfigError,
    IndexParseError,
    MissingIndexError,
    TransientNetworkError,
)
from .codec import Decompressor, xz_decompressor

logger = logging.getLogger(__name__)

# Default snapshot archive
DEFAULT_BASE_URL = "https://snapshot.debian.org/archive"
DEFAULT_ARCHIVE = "debian"

# Failures worth running again later; anything else is a setup or archive fault
TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)
BAD_URL_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidSchema,
    requests.exceptions.MissingSchema,
    requests.exceptions.URLRequired,
)


def request_error(
    error: requests.RequestException,
    operation: str,
    instant: datetime,
    url: str,
) -> Exception:
    """Classify a failed request into the debsnapgit error taxonomy."""
    if isinstance(error, TRANSIENT_ERRORS):
        return TransientNetworkError(str(error), operation=operation, instant=instant, path=url)
    if isinstance(error, BAD_URL_ERRORS):
        return ConfigError(f"invalid archive URL {url!r}: {error}")
    return ArchiveProtocolError(str(error), operation=operation, instant=instant, path=url)


class TimeResolver(Protocol):
    """Maps a point in time to the nearest snapshot instant the archive knows."""

    def resolve(self, instant: datetime) -> datetime:
        ...


class IndexStream:
    """
    Decompressed index stream bound to the HTTP response it reads from.

    Closing it closes both the decompressor and the response, so a single
    `with` block releases every layer on every exit path.
    """

    def __init__(self, reader: BinaryIO, response: requests.Response, url: str = ""):
        self._reader = reader
        self._response = response
        self.url = url
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        return self._reader.read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._reader.readline(size)

    def __iter__(self):
        return iter(self._reader)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._reader.close()
        finally:
            self._response.close()

    def __enter__(self) -> 'IndexStream':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SnapshotClient:
    """
    Client for a snapshot archive's HTTP surface.

    Example:
        with SnapshotClient() as client:
            t = client.resolve(datetime.now(timezone.utc))
            with client.fetch_index(t, Selector("sid", "main", "amd64")) as stream:
                data = stream.read()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        archive: str = DEFAULT_ARCHIVE,
        timeout: Optional[float] = None,
        decompressor: Decompressor = xz_decompressor,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize SnapshotClient.

        Args:
            base_url: Archive base URL (without the archive name)
            archive: Archive name below base_url (e.g. "debian")
            timeout: HTTP timeout in seconds; None leaves the transport default
            decompressor: Wraps the raw index body in a decompressing reader
            session: requests session to use (one is created if omitted)
        """
        self.base_url = base_url.rstrip('/')
        self.archive = archive.strip('/')
        self.timeout = timeout
        self.decompressor = decompressor
        self.session = session or requests.Session()

    def snapshot_url(self, instant: datetime) -> str:
        """URL of the snapshot root for an instant."""
        return f"{self.base_url}/{self.archive}/{format_instant(instant)}/"

    def index_url(self, instant: datetime, selector: Selector) -> str:
        """URL of the binary Packages index of a snapshot."""
        return self.snapshot_url(instant) + selector.index_path

    def resolve(self, instant: datetime) -> datetime:
        """
        Resolve a time to the nearest snapshot instant the archive published.

        Raises:
            TransientNetworkError: If the connection failed or timed out
            ConfigError: If the URL is malformed
            ArchiveProtocolError: If the archive's answer is not a 200 or a
                301 to a snapshot instant
        """
        instant = to_utc(instant)
        url = self.snapshot_url(instant)
        try:
            response = self.session.head(url, allow_redirects=False, timeout=self.timeout)
        except requests.RequestException as e:
            raise request_error(e, "resolve", instant, url) from e

        with response:
            if response.status_code == requests.codes.ok:
                logger.warning(
                    f"Received HTTP OK for {format_instant(instant)}, "
                    "this is extremely unlikely, but continuing on anyway"
                )
                return instant

            if response.status_code != requests.codes.moved_permanently:
                raise ArchiveProtocolError(
                    f"unexpected status {response.status_code} {response.reason}",
                    operation="resolve", instant=instant, path=url,
                )

            location = response.headers.get('Location')

        if not location:
            raise ArchiveProtocolError(
                "301 without a Location header",
                operation="resolve", instant=instant, path=url,
            )

        segments = [s for s in urlparse(location).path.split('/') if s]
        if not segments:
            raise ArchiveProtocolError(
                f"Location {location!r} has no path",
                operation="resolve", instant=instant, path=url,
            )

        try:
            resolved = parse_instant(segments[-1])
        except ValueError as e:
            raise ArchiveProtocolError(
                f"Location {location!r} does not name a snapshot: {e}",
                operation="resolve", instant=instant, path=url,
            ) from e

        logger.debug(f"Resolved {format_instant(instant)} to {format_instant(resolved)}")
        return resolved

    def fetch_index(self, instant: datetime, selector: Selector) -> IndexStream:
        """
        Stream the decompressed binary Packages index of a snapshot.

        The caller owns the returned stream and must close it.

        Raises:
            TransientNetworkError: If the connection failed or timed out
            ConfigError: If the URL is malformed
            MissingIndexError: If the archive does not answer 200
            IndexParseError: If the body cannot be decompressed
        """
        url = self.index_url(instant, selector)
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise request_error(e, "fetch", instant, url) from e

        if response.status_code != requests.codes.ok:
            status = f"{response.status_code} {response.reason}"
            response.close()
            raise MissingIndexError(
                f"received non-ok status {status}",
                status_code=response.status_code,
                operation="fetch", instant=instant, path=url,
            )

        try:
            response.raw.decode_content = True
            reader = self.decompressor(response.raw)
        except Exception as e:
            response.close()
            raise IndexParseError(
                f"cannot open index stream: {e}",
                operation="fetch", instant=instant, path=url,
            ) from e

        logger.debug(f"Streaming {url}")
        return IndexStream(reader, response, url=url)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'SnapshotClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
