"""
Reconstruction of the downloaded/missing map of a partial download.

Each undownloaded range ("gap") of the target file is stored as two integer tags: a gap start tag (name ``\\x09`` +
token) holding the start offset, and a gap end tag (name ``\\x0A`` + token) holding the end offset. The token is an
arbitrary reference string, typically a decimal number, shared by the two tags of a pair. Pairs are not guaranteed to
be adjacent or in any particular order.
"""

import logging

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .classify import GapKind, gap_kind, gap_reference
from .tags import Tag, IntegerTag


_log = logging.getLogger(__name__)


DEFAULT_BITMAP_WIDTH = 70


@dataclass(frozen=True)
class GapRange:
    """
    An undownloaded range of the target file, as the half-open byte interval ``[start, end)``.

    No validation is performed: if the source data is inconsistent, `end` may well be smaller than `start`.
    """

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class DownloadProgress:
    file_size: int
    downloaded_bytes: int

    @property
    def percentage(self) -> float:
        return percentage(self.downloaded_bytes, self.file_size)


def collect_gaps(tags: Sequence[Tag]) -> List[GapRange]:
    """
    Pairs the gap start and end tags into `GapRange` objects.

    Every integer gap start tag is matched against the first integer gap end tag with the same reference token,
    wherever it is in the list. This is an O(n^2) scan over the tags.

    Starts that have no matching end, or whose matching end has the value 0, are silently dropped. The result is in the
    order in which the starts appear.
    """

    gaps = []

    for start_tag in tags:
        if not _is_integer_gap_tag(start_tag, GapKind.START):
            continue

        reference = gap_reference(start_tag)
        end_tag = _find_gap_end(tags, reference)

        if end_tag is None:
            _log.debug("Dropping gap start %r: no matching end tag", reference)
            continue

        # TODO: find out whether an end offset of 0 marks an open-ended gap; for now such pairs are skipped
        if end_tag.value <= 0:
            _log.debug("Dropping gap start %r: end offset is 0", reference)
            continue

        gaps.append(GapRange(start_tag.value, end_tag.value))

    return gaps


def _find_gap_end(tags: Iterable[Tag], reference: str) -> Optional[IntegerTag]:
    for tag in tags:
        if _is_integer_gap_tag(tag, GapKind.END) and (gap_reference(tag) == reference):
            return tag

    return None


def _is_integer_gap_tag(tag: Tag, kind: GapKind) -> bool:
    return isinstance(tag, IntegerTag) and (gap_kind(tag) == kind)


def total_gap_size(gaps: Iterable[GapRange]) -> int:
    return sum(gap.size for gap in gaps)


def percentage(part: int, whole: int) -> float:
    """
    Computes ``part`` as a percentage of ``whole``, returning 0.0 if ``whole`` is 0.
    """
    if whole == 0:
        return 0.0

    return part * 100.0 / whole


def bucket_overlaps_gap(bucket_start: int, bucket_end: int, gap: GapRange) -> bool:
    """
    Checks whether the half-open intervals ``[bucket_start, bucket_end)`` and ``[gap.start, gap.end)`` overlap.

    Intervals that merely touch (e.g. ``bucket_end == gap.start``) do not overlap.
    """
    return not ((bucket_end <= gap.start) or (bucket_start >= gap.end))


def download_bitmap(gaps: Sequence[GapRange], file_size: int, width: int = DEFAULT_BITMAP_WIDTH) -> List[bool]:
    """
    Splits the target file into `width` buckets of (roughly) equal size and reports which are fully downloaded.

    Args:
        gaps: The undownloaded ranges, as returned by `collect_gaps`.
        file_size: The size of the target file, in bytes.
        width: The number of buckets.

    Returns:
        A list of `width` bools, True for each bucket that does not overlap any gap.
    """

    if width < 1:
        raise ValueError(f"Bitmap width must be at least 1 (is: {width})")

    result = []

    for i in range(width):
        bucket_start = int((i / width) * file_size)
        bucket_end = int(((i + 1) / width) * file_size)

        result.append(not any(bucket_overlaps_gap(bucket_start, bucket_end, gap) for gap in gaps))

    return result
