"""
Semantic classification of ``.part.met`` tags.

The format has no explicit field telling what kind of tag a record is. Instead, the meaning is inferred from how the
name is encoded:

- A name of exactly 1 byte denotes a *special* tag. The byte itself is a numeric field ID (see `SpecialTagId`).
- A longer name whose first byte is 9 or 10 denotes a *gap* tag (start or end of an undownloaded range). The rest of
  the name is a reference token that pairs a start with its end.
- A name matching one of a few well-known labels (case-insensitively) denotes a *standard* tag (media attributes).
- Anything else is *unknown*.

The checks are always applied in that order, so e.g. a 1-byte name of ``\\x09`` is special, not a gap.
"""

from enum import Enum, IntEnum
from typing import Optional

from .tags import Tag, IntegerTag


class TagCategory(Enum):
    SPECIAL = 'special'
    GAP = 'gap'
    STANDARD = 'standard'
    UNKNOWN = 'unknown'


class GapKind(IntEnum):
    START = 9
    END = 10


class SpecialTagId(IntEnum):
    FILENAME = 1
    FILE_SIZE = 2
    FILE_TYPE = 3
    FILE_FORMAT = 4
    LAST_SEEN_COMPLETE = 5
    DOWNLOADED_BYTES = 8
    PART_FILENAME = 18
    LEGACY_PRIORITY = 19
    STATUS = 20
    DOWNLOAD_PRIORITY = 24
    UPLOAD_PRIORITY = 25


STANDARD_TAG_DESCRIPTIONS = {
    'artist': "Media file artist",
    'album': "Media file album",
    'title': "Media file title",
    'length': "Media file duration",
    'bitrate': "Media file bitrate",
    'codec': "Media file codec",
}
"""Descriptions of the known standard tags, keyed by the lowercase tag name"""


def classify_tag(tag: Tag) -> TagCategory:
    name = tag.name

    if len(name) == 1:
        return TagCategory.SPECIAL
    if (len(name) >= 2) and (name[0] in (GapKind.START, GapKind.END)):
        return TagCategory.GAP
    if describe_standard_tag(name) is not None:
        return TagCategory.STANDARD

    return TagCategory.UNKNOWN


def special_tag_id(tag: Tag) -> Optional[int]:
    """
    Returns the numeric field ID of a special tag, or None if the tag is not special.
    """
    return tag.name[0] if classify_tag(tag) == TagCategory.SPECIAL else None


def gap_kind(tag: Tag) -> Optional[GapKind]:
    return GapKind(tag.name[0]) if classify_tag(tag) == TagCategory.GAP else None


def gap_reference(tag: Tag) -> Optional[str]:
    """
    Returns the reference token of a gap tag (the part of the name after the sentinel byte), as text.

    Tokens are compared as C strings, so anything after an embedded null byte is disregarded.
    """
    if classify_tag(tag) != TagCategory.GAP:
        return None

    return _name_as_text(tag.name[1:])


def tag_name_text(tag: Tag) -> str:
    """
    Renders the name of a standard or unknown tag as text (up to the first null byte, if any).
    """
    return _name_as_text(tag.name)


def _name_as_text(raw_name: bytes) -> str:
    return raw_name.split(b'\x00', 1)[0].decode('latin-1')


def describe_standard_tag(name: bytes) -> Optional[str]:
    return STANDARD_TAG_DESCRIPTIONS.get(_name_as_text(name).lower())


def describe_gap_tag(tag: Tag) -> Optional[str]:
    kind = gap_kind(tag)

    if kind == GapKind.START:
        return "Start of gap (undownloaded area)"
    if kind == GapKind.END:
        return "End of gap (undownloaded area)"

    return None


def describe_special_tag(tag_id: int, int_value: int = 0) -> Optional[str]:
    """
    Returns a human-readable description of a special tag, or None if the tag ID is not known.

    For the status and priority tags, the description includes the meaning of the value, hence the need for the
    `int_value` parameter. Use 0 for tags that hold strings.
    """

    if tag_id == SpecialTagId.STATUS:
        return "Download status: " + _DOWNLOAD_STATUS_NAMES.get(int_value, "Unknown")
    if tag_id == SpecialTagId.DOWNLOAD_PRIORITY:
        return "Download priority: " + _DOWNLOAD_PRIORITY_NAMES.get(int_value, "Unknown")
    if tag_id == SpecialTagId.UPLOAD_PRIORITY:
        return "Upload priority: " + _UPLOAD_PRIORITY_NAMES.get(int_value, "Unknown")

    return _SPECIAL_TAG_DESCRIPTIONS.get(tag_id)


def describe_tag(tag: Tag) -> Optional[str]:
    """
    Returns a human-readable description for any kind of tag, or None if nothing is known about it.
    """

    category = classify_tag(tag)

    if category == TagCategory.SPECIAL:
        return describe_special_tag(tag.name[0], tag.value if isinstance(tag, IntegerTag) else 0)
    if category == TagCategory.GAP:
        return describe_gap_tag(tag)
    if category == TagCategory.STANDARD:
        return describe_standard_tag(tag.name)

    return None


def status_remark(status: int) -> Optional[str]:
    """
    Extra remark shown in verbose mode for some download status codes.
    """
    return _STATUS_REMARKS.get(status)


_SPECIAL_TAG_DESCRIPTIONS = {
    SpecialTagId.FILENAME: "Filename",
    SpecialTagId.FILE_SIZE: "File size in bytes",
    SpecialTagId.FILE_TYPE: "File type",
    SpecialTagId.FILE_FORMAT: "File format",
    SpecialTagId.LAST_SEEN_COMPLETE: "Last time file was seen complete on network",
    SpecialTagId.DOWNLOADED_BYTES: "Number of bytes downloaded so far",
    SpecialTagId.PART_FILENAME: "Temporary (.part) filename",
    SpecialTagId.LEGACY_PRIORITY: "Download priority (eDonkey/Overnet <0.49)",
}

# Code 5 is not assigned
_DOWNLOAD_STATUS_NAMES = {
    0: "Ready",
    1: "Empty",
    2: "Waiting for hash",
    3: "Hashing",
    4: "Error",
    6: "Unknown",
    7: "Paused",
    8: "Completing",
    9: "Completed",
}

_DOWNLOAD_PRIORITY_NAMES = {
    0: "Low",
    1: "Normal",
    2: "High",
    3: "Very high (eMule) / Highest/Horde (eDonkey/Overnet)",
    4: "Very low (eMule)",
    5: "Auto (eMule)",
}

_UPLOAD_PRIORITY_NAMES = {
    0: "Low",
    1: "Normal",
    2: "High",
    3: "Very high",
    4: "Very low",
    5: "Auto",
}

_STATUS_REMARKS = {
    0: "File is ready for download",
    7: "Download is manually paused",
    9: "Download is fully completed",
}
