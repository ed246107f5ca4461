"""
Decompression and control-file codecs for debsnapgit.

Two small capabilities keep the grouping and materialization logic
independent of the actual wire formats:
- Decompressor: turns the raw index body into a readable byte stream
- RecordCodec: decodes/encodes deb822 paragraphs of a Packages index

Tests use the identity decompressor and plain text indices.
"""

import io
import logging
import lzma
import re
from typing import BinaryIO, Callable, Iterable, Iterator, Mapping, Any

from debian import deb822

logger = logging.getLogger(__name__)

# Takes the raw (compressed) body, returns a decompressed binary stream
Decompressor = Callable[[BinaryIO], BinaryIO]

REQUIRED_FIELDS = ('Package', 'Version')
FIELD_NAME = re.compile(r'^[^:\s]+$')


def xz_decompressor(raw: BinaryIO) -> BinaryIO:
    """Decompress an .xz stream lazily as it is read."""
    return lzma.LZMAFile(raw, mode='rb')


def identity_decompressor(raw: BinaryIO) -> BinaryIO:
    """Pass an uncompressed stream through unchanged."""
    return raw


class ControlFormatError(ValueError):
    """A paragraph of a control file is malformed."""


class RecordCodec:
    """
    deb822 codec for binary package paragraphs.

    Decoding is strict: a paragraph without a Package or Version field,
    or text that is not valid UTF-8, is an error rather than being
    skipped.
    """

    encoding = 'utf-8'

    def decode(self, stream: BinaryIO) -> Iterator[Mapping[str, Any]]:
        """
        Yield paragraphs from a Packages index stream.

        Raises:
            ControlFormatError: On malformed content
        """
        lines = self._checked_lines(stream)
        for index, paragraph in enumerate(
            deb822.Packages.iter_paragraphs(lines, use_apt_pkg=False)
        ):
            missing = [name for name in REQUIRED_FIELDS if not paragraph.get(name)]
            if missing:
                raise ControlFormatError(
                    f"paragraph {index + 1} lacks {', '.join(missing)}"
                )
            yield paragraph

    def encode(self, records: Iterable[Mapping[str, Any]]) -> bytes:
        """
        Encode paragraphs back to text, separated by blank lines.

        Field order, names and continuation lines come back as decoded.
        Trailing whitespace of a value is not kept: deb822 strips it on
        decode, so "Description: x  " is written as "Description: x".
        """
        out = io.StringIO()
        for i, record in enumerate(records):
            if i:
                out.write('\n')
            if isinstance(record, deb822.Deb822):
                out.write(record.dump())
            else:
                out.write(deb822.Packages(record).dump())
        return out.getvalue().encode(self.encoding)

    def _checked_lines(self, stream: BinaryIO) -> Iterator[str]:
        """
        Decode lines and validate paragraph structure.

        deb822 skips lines it cannot parse and lets a repeated field
        overwrite the earlier one, so anything it would drop or merge is
        rejected here first.
        """
        seen = set()
        for lineno, raw in enumerate(stream, start=1):
            try:
                line = raw.decode(self.encoding)
            except UnicodeDecodeError as e:
                raise ControlFormatError(f"line {lineno} is not {self.encoding}: {e}") from e
            stripped = line.rstrip('\r\n')

            if not stripped.strip():
                # Paragraph separator
                seen = set()
            elif stripped[0].isspace():
                if not seen:
                    raise ControlFormatError(
                        f"line {lineno} continues no field: {stripped!r}"
                    )
            elif stripped.startswith('#'):
                raise ControlFormatError(f"line {lineno} is a comment: {stripped!r}")
            else:
                name, sep, _ = stripped.partition(':')
                if not sep or not FIELD_NAME.match(name):
                    raise ControlFormatError(f"line {lineno} is not a field: {stripped!r}")
                if name.lower() in seen:
                    raise ControlFormatError(f"line {lineno} repeats field {name!r}")
                seen.add(name.lower())
            yield line
