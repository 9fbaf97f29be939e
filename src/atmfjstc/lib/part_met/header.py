"""
Locating the fixed fields at the start of a ``.part.met`` file.

The file starts with a format tag byte, which determines where everything else is:

============  ================  ===========================================
Format tag    Content hash at   Tag count at
============  ================  ===========================================
0xE0 (14.0)   offset 5          ``23 + 16 * blocks`` (u16 blocks at 21)
0xE1 (14.1)   offset 6          offset 22
============  ================  ===========================================

The 16-byte blocks in version 14.0 are the part hashes of the file, which we do not decode.
"""

import logging

from dataclasses import dataclass
from enum import IntEnum

from .BinaryCursor import BinaryCursor
from .errors import UnrecognizedFormatError, TruncatedInputError


_log = logging.getLogger(__name__)


CONTENT_HASH_SIZE = 16

V14_0_BLOCK_COUNT_OFFSET = 21
V14_0_BLOCK_TABLE_OFFSET = 23
V14_0_BLOCK_SIZE = 16
V14_1_TAG_COUNT_OFFSET = 22


class PartMetVersion(IntEnum):
    V14_0 = 0xE0
    V14_1 = 0xE1

    @property
    def label(self) -> str:
        return '14.0' if self == PartMetVersion.V14_0 else '14.1'

    @property
    def hash_offset(self) -> int:
        return 5 if self == PartMetVersion.V14_0 else 6


@dataclass(frozen=True)
class FormatHeader:
    version: PartMetVersion
    hash_offset: int
    tag_count_offset: int
    block_count: int = 0


def resolve_format_header(cursor: BinaryCursor) -> FormatHeader:
    """
    Detects the format version and computes the offsets of the content hash and the tag count.

    The cursor is repositioned to the start of the data first. Afterwards, its position is unspecified; callers must
    seek to the offsets in the result before reading.

    Raises:
        UnrecognizedFormatError: If the data is empty or the first byte is not a known format tag.
        TruncatedInputError: If the data ends before the block count (for version 14.0).
        SeekError: If the block count offset is past the end of the data.
    """

    cursor.seek(0, 'format tag')

    try:
        format_byte = cursor.read_uint8('format tag')
    except TruncatedInputError:
        raise UnrecognizedFormatError(None) from None

    try:
        version = PartMetVersion(format_byte)
    except ValueError:
        raise UnrecognizedFormatError(format_byte) from None

    if version == PartMetVersion.V14_0:
        cursor.seek(V14_0_BLOCK_COUNT_OFFSET, 'block count')
        block_count = cursor.read_uint16('block count')
        tag_count_offset = V14_0_BLOCK_TABLE_OFFSET + V14_0_BLOCK_SIZE * block_count
    else:
        block_count = 0
        tag_count_offset = V14_1_TAG_COUNT_OFFSET

    header = FormatHeader(
        version=version,
        hash_offset=version.hash_offset,
        tag_count_offset=tag_count_offset,
        block_count=block_count,
    )

    _log.debug("Resolved format header: %s", header)

    return header


def read_content_hash(cursor: BinaryCursor, header: FormatHeader) -> bytes:
    """
    Reads the raw 16-byte content identifier (the ED2K hash).
    """
    cursor.seek(header.hash_offset, 'content hash')

    return cursor.read_amount(CONTENT_HASH_SIZE, 'content hash')


def read_tag_count(cursor: BinaryCursor, header: FormatHeader) -> int:
    """
    Reads the number of tags. Afterwards, the cursor is positioned at the first tag.
    """
    cursor.seek(header.tag_count_offset, 'tag count')

    return cursor.read_uint32('tag count')


def format_content_hash(raw_hash: bytes) -> str:
    """
    Renders a content identifier as uppercase hex, two digits per byte, in stream order, with no separators.
    """
    if len(raw_hash) != CONTENT_HASH_SIZE:
        raise ValueError(f"Content hash must be {CONTENT_HASH_SIZE} bytes long (is: {len(raw_hash)})")

    return raw_hash.hex().upper()
