"""
Parsing and regrouping of binary package indices.

A Packages index lists binary packages in no guaranteed order. To archive
it per source package, records are sorted by (source key, package name,
Debian version) and then cut into maximal runs sharing a source key.
"""

import logging
import lzma
from itertools import groupby
from typing import BinaryIO, Iterable, List, Optional

import requests
import urllib3

from ..domain.package import PackageRecord, SourceGroup
from ..exit_codes import IndexParseError, TransientNetworkError
from ..infra.codec import ControlFormatError, RecordCodec

logger = logging.getLogger(__name__)


def group_packages(records: Iterable[PackageRecord]) -> List[SourceGroup]:
    """
    Sort records and partition them by source key.

    Raises:
        ValueError: If a record's Version is not a valid Debian version
    """
    ordered = sorted(records, key=PackageRecord.sort_key)
    return [
        SourceGroup(key=key, records=list(run))
        for key, run in groupby(ordered, key=lambda record: record.source_key)
    ]


def parse_and_group(stream: BinaryIO, codec: Optional[RecordCodec] = None) -> List[SourceGroup]:
    """
    Parse a decompressed Packages index and group it by source package.

    Args:
        stream: Decompressed index bytes
        codec: Control-file codec (deb822 by default)

    Returns:
        Source groups in source key order

    Raises:
        IndexParseError: If any part of the index is malformed
    """
    codec = codec or RecordCodec()
    try:
        records = [PackageRecord(fields) for fields in codec.decode(stream)]
        groups = group_packages(records)
    except (ControlFormatError, ValueError, lzma.LZMAError, EOFError) as e:
        raise IndexParseError(str(e), operation="parse") from e
    except (urllib3.exceptions.HTTPError, requests.RequestException) as e:
        raise TransientNetworkError(f"index download interrupted: {e}", operation="parse") from e

    logger.debug(f"Grouped {len(records)} packages into {len(groups)} sources")
    return groups
