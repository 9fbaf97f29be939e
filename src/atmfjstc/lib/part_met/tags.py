"""
The tag records that make up the metadata section of a ``.part.met`` file, and the codec for them.

Each record is laid out as::

    u8  type code (2 = string, 3 = integer)
    u16 name length
    ... name bytes
    then, for strings:   u16 value length + value bytes
          for integers:  u32 value

All ints are little-endian. Names are raw byte strings: they are not null-terminated and often start with a
non-printable byte that carries their meaning (see the `classify` module).
"""

import logging

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Union

from .BinaryCursor import BinaryCursor
from .errors import UnrecognizedTagTypeError


_log = logging.getLogger(__name__)


class TagType(IntEnum):
    STRING = 2
    INTEGER = 3


@dataclass(frozen=True)
class StringTag:
    """
    A tag holding a string value.

    Attributes:
        name: The raw name of the tag, as a byte string.
        raw_value: The raw value, as a byte string. Use `value` for a text view.
    """

    name: bytes
    raw_value: bytes

    @property
    def tag_type(self) -> TagType:
        return TagType.STRING

    @property
    def value(self) -> str:
        return decode_text(self.raw_value)


@dataclass(frozen=True)
class IntegerTag:
    """
    A tag holding an unsigned 32-bit integer value.
    """

    name: bytes
    value: int

    def __post_init__(self):
        if not (0 <= self.value <= 0xFFFFFFFF):
            raise ValueError(f"Integer tag value must fit in 32 bits unsigned (is: {self.value})")

    @property
    def tag_type(self) -> TagType:
        return TagType.INTEGER


Tag = Union[StringTag, IntegerTag]


def decode_text(raw: bytes) -> str:
    """
    Interprets a raw string from a ``.part.met`` file as text.

    The format does not specify an encoding. Modern clients write UTF-8, older ones wrote whatever the local code page
    was, so we try UTF-8 first and fall back to LATIN-1 (which never fails).
    """
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


def read_tag(cursor: BinaryCursor) -> Tag:
    """
    Decodes one tag record at the current position of the cursor.

    Raises:
        UnrecognizedTagTypeError: If the type code is neither 2 nor 3. The name has already been consumed at this
            point, but since the size of the value is unknown, the stream cannot be read any further.
        TruncatedInputError: If the data ends in the middle of the record.
    """

    position = cursor.tell()

    type_code = cursor.read_uint8('tag type')
    name = cursor.read_length_prefixed_bytes('tag name')

    if type_code == TagType.STRING:
        return StringTag(name, cursor.read_length_prefixed_bytes('tag string value'))
    if type_code == TagType.INTEGER:
        return IntegerTag(name, cursor.read_uint32('tag integer value'))

    raise UnrecognizedTagTypeError(type_code, position)


def read_tags(cursor: BinaryCursor, count: int) -> List[Tag]:
    """
    Decodes `count` consecutive tag records.

    If a record with an unrecognized type is found, reading stops and an `UnrecognizedTagTypeError` is raised whose
    `decoded_tags` attribute contains all the tags read before it.
    """

    tags = []

    for _ in range(count):
        try:
            tags.append(read_tag(cursor))
        except UnrecognizedTagTypeError as e:
            _log.debug("Tag stream aborted after %d of %d tags", len(tags), count)
            raise e.with_decoded_tags(tags) from None

    return tags


def encode_tag(tag: Tag) -> bytes:
    """
    Encodes a tag in the exact format that `read_tag` decodes.
    """

    if isinstance(tag, StringTag):
        value_part = _length_prefixed(tag.raw_value, 'string value')
    elif isinstance(tag, IntegerTag):
        value_part = tag.value.to_bytes(4, byteorder='little')
    else:
        raise TypeError(f"Expected a StringTag or IntegerTag, got {tag.__class__.__name__}")

    return bytes([tag.tag_type]) + _length_prefixed(tag.name, 'name') + value_part


def _length_prefixed(data: bytes, what: str) -> bytes:
    if len(data) > 0xFFFF:
        raise ValueError(f"Tag {what} is too long to encode ({len(data)} bytes, max is 65535)")

    return len(data).to_bytes(2, byteorder='little') + data
