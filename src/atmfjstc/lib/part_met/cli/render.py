"""
Rendering of decoded ``.part.met`` data as text or JSON, for the ``readmet`` command.
"""

import json

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, TextIO

from atmfjstc.lib.part_met import PartMetFile
from atmfjstc.lib.part_met.tags import Tag, TagType, IntegerTag, StringTag
from atmfjstc.lib.part_met.classify import TagCategory, SpecialTagId, GapKind, classify_tag, describe_special_tag, \
    describe_gap_tag, describe_standard_tag, gap_kind, gap_reference, tag_name_text, status_remark
from atmfjstc.lib.part_met.gaps import GapRange, percentage, total_gap_size, download_bitmap


BAR_WIDTH = 70
MEGABYTE = 1048576.0


@dataclass(frozen=True)
class DisplayOptions:
    show_special: bool = False
    show_gap: bool = False
    show_standard: bool = False
    show_unknown: bool = False

    show_filename: bool = False
    show_filesize: bool = False
    show_date: bool = False
    show_progress: bool = False
    show_hash: bool = False
    show_metversion: bool = False
    show_tagcount: bool = False

    visualize: bool = False
    json_output: bool = False
    verbose: bool = False

    @property
    def any_field(self) -> bool:
        return self.show_filename or self.show_filesize or self.show_date or self.show_progress

    @property
    def any_tag_filter(self) -> bool:
        return self.show_special or self.show_gap or self.show_standard or self.show_unknown

    def shows_category(self, category: TagCategory) -> bool:
        return {
            TagCategory.SPECIAL: self.show_special,
            TagCategory.GAP: self.show_gap,
            TagCategory.STANDARD: self.show_standard,
            TagCategory.UNKNOWN: self.show_unknown,
        }[category]


def render(met: PartMetFile, options: DisplayOptions, out: TextIO):
    """
    Writes the requested view of a decoded file to `out`.

    The single-value modes (version, hash, tag count) take precedence, in that order, then the specific fields, and
    finally the full report.
    """

    if options.show_metversion:
        _emit_single(out, options, 'format_version', met.version.label)
    elif options.show_hash:
        _emit_single(out, options, 'ed2k_hash', met.content_hash)
    elif options.show_tagcount:
        _emit_single(out, options, 'num_tags', met.tag_count)
    elif options.any_field:
        if options.json_output:
            _emit_json(out, {'fields': fields_as_json(met, options)})
        else:
            text = first_field_as_text(met, options)
            if text is not None:
                out.write(text + '\n')
    elif options.json_output:
        _emit_json(out, report_as_json(met, options))
    else:
        for line in report_as_text(met, options):
            out.write(line + '\n')


def _emit_single(out: TextIO, options: DisplayOptions, key: str, value: Any):
    if options.json_output:
        _emit_json(out, {key: value})
    else:
        out.write(f"{value}\n")


def _emit_json(out: TextIO, data: Dict[str, Any]):
    json.dump(data, out, ensure_ascii=False)
    out.write('\n')


def format_date(unix_time: int) -> str:
    """
    Formats a UNIX timestamp as a local date and time, e.g. ``2004-05-17 21:03:44``.
    """
    return datetime.fromtimestamp(unix_time).isoformat(sep=' ', timespec='seconds')


def to_mb(n_bytes: int) -> float:
    return n_bytes / MEGABYTE


def first_field_as_text(met: PartMetFile, options: DisplayOptions) -> Optional[str]:
    """
    Script-friendly output: the raw value of the first requested field, or None if it is not present in the file.
    """

    if options.show_filename:
        return met.filename
    if options.show_filesize:
        size_tag = met.find_special_tag(SpecialTagId.FILE_SIZE, TagType.INTEGER)
        return str(size_tag.value) if size_tag is not None else None
    if options.show_date:
        last_seen = met.last_seen_complete
        if last_seen is None:
            return None

        return format_date(last_seen) if options.verbose else str(last_seen)
    if options.show_progress:
        return f"{met.progress.percentage:.1f}"

    return None


def fields_as_json(met: PartMetFile, options: DisplayOptions) -> Dict[str, Any]:
    fields = dict()

    if options.show_filename:
        fields['filename'] = met.filename
    if options.show_filesize:
        size_tag = met.find_special_tag(SpecialTagId.FILE_SIZE, TagType.INTEGER)
        fields['filesize'] = size_tag.value if size_tag is not None else None
        if options.verbose and (fields['filesize'] is not None):
            fields['filesize_mb'] = round(to_mb(fields['filesize']), 2)
    if options.show_date:
        fields['last_seen'] = met.last_seen_complete
        if options.verbose and (fields['last_seen'] is not None):
            fields['last_seen_date'] = format_date(fields['last_seen'])
    if options.show_progress:
        progress = met.progress
        fields['progress'] = dict(
            total_bytes=progress.file_size,
            downloaded_bytes=progress.downloaded_bytes,
            total_mb=round(to_mb(progress.file_size), 2),
            downloaded_mb=round(to_mb(progress.downloaded_bytes), 2),
            percentage=round(progress.percentage, 1),
        )

    return fields


def report_as_json(met: PartMetFile, options: DisplayOptions) -> Dict[str, Any]:
    report = dict(
        format_version=met.version.label,
        ed2k_hash=met.content_hash,
        num_tags=met.tag_count,
    )

    if options.any_tag_filter:
        report['tags'] = [
            tag_as_json(tag)
            for tag, category in met.classified_tags()
            if options.shows_category(category)
        ]

    if options.visualize:
        report['visualization'] = visualization_as_json(met.gaps, met.file_size, met.downloaded_bytes)

    return report


def report_as_text(met: PartMetFile, options: DisplayOptions) -> Iterator[str]:
    """
    Generates the lines of the full report. The header lines come first and are produced without touching the tags, so
    that they can be shown even if the tag stream turns out to be broken.
    """

    yield f".part.met file version: {met.version.label}"
    yield f"ED2K Hash: {met.content_hash}"
    yield f"Number of meta tags: {met.tag_count}"

    if options.any_tag_filter:
        yield ''
        yield "=== META TAGS ==="

        for tag, category in met.classified_tags():
            if options.shows_category(category):
                yield tag_as_text(tag, options.verbose)

    if options.visualize:
        yield from visualization_as_text(met.gaps, met.file_size, met.downloaded_bytes)


def tag_as_json(tag: Tag) -> Dict[str, Any]:
    category = classify_tag(tag)
    result: Dict[str, Any] = dict(type=category.value)

    if category == TagCategory.SPECIAL:
        tag_id = tag.name[0]
        result['id'] = tag_id

        description = describe_special_tag(tag_id, tag.value if isinstance(tag, IntegerTag) else 0)
        if description is not None:
            result['description'] = description
    elif category == TagCategory.GAP:
        result['gap_type'] = 'start' if gap_kind(tag) == GapKind.START else 'end'
        result['reference'] = gap_reference(tag)
    else:
        result['name'] = tag_name_text(tag)

    result['value'] = tag.value

    if isinstance(tag, IntegerTag) and (category == TagCategory.SPECIAL):
        if tag.name[0] in (SpecialTagId.FILE_SIZE, SpecialTagId.DOWNLOADED_BYTES):
            result['value_mb'] = round(to_mb(tag.value), 2)
        elif tag.name[0] == SpecialTagId.LAST_SEEN_COMPLETE:
            result['value_date'] = format_date(tag.value)

    return result


def tag_as_text(tag: Tag, verbose: bool = False) -> str:
    category = classify_tag(tag)

    if category == TagCategory.SPECIAL:
        return _special_tag_as_text(tag, verbose)
    if category == TagCategory.GAP:
        return _gap_tag_as_text(tag, verbose)

    name = tag_name_text(tag)

    if category == TagCategory.STANDARD:
        text = f"Tag: (Standard) {name} = {_value_as_text(tag)}"
        if verbose:
            text += f" - {describe_standard_tag(tag.name)}"

        return text

    return f"Tag: (Unknown) Name: \"{name}\", Value: {_value_as_text(tag)}"


def _special_tag_as_text(tag: Tag, verbose: bool) -> str:
    tag_id = tag.name[0]
    prefix = f"Tag: (Special, {tag_id}) "

    if isinstance(tag, StringTag):
        description = describe_special_tag(tag_id)
        if description is None:
            return prefix + f"Name: {tag_id}, Value: {_value_as_text(tag)}"

        return prefix + f"{description} = {_value_as_text(tag)}"

    description = describe_special_tag(tag_id, tag.value)
    if description is None:
        return prefix + f"Name: {tag_id}, Value: {tag.value}"

    text = prefix + f"{description} = {tag.value}"

    if verbose:
        if tag_id in (SpecialTagId.FILE_SIZE, SpecialTagId.DOWNLOADED_BYTES):
            text += f" ({to_mb(tag.value):.2f} MB)"
        elif tag_id == SpecialTagId.LAST_SEEN_COMPLETE:
            text += f" ({format_date(tag.value)})"
        elif tag_id == SpecialTagId.STATUS:
            remark = status_remark(tag.value)
            if remark is not None:
                text += f" - {remark}"

    return text


def _gap_tag_as_text(tag: Tag, verbose: bool) -> str:
    text = f"Tag: (Gap) {describe_gap_tag(tag)}, Reference: {gap_reference(tag)}, Value: {_value_as_text(tag)}"

    if verbose and isinstance(tag, IntegerTag):
        text += f" ({to_mb(tag.value):.2f} MB)"

    return text


def _value_as_text(tag: Tag) -> str:
    return str(tag.value) if isinstance(tag, IntegerTag) else f"\"{tag.value}\""


def visualization_as_json(gaps: List[GapRange], file_size: int, downloaded_bytes: int) -> Dict[str, Any]:
    gap_total = total_gap_size(gaps)

    return dict(
        total_size=file_size,
        total_size_mb=round(to_mb(file_size), 2),
        downloaded=downloaded_bytes,
        downloaded_mb=round(to_mb(downloaded_bytes), 2),
        percentage=round(percentage(downloaded_bytes, file_size), 1),
        gaps=dict(
            count=len(gaps),
            total_size=gap_total,
            total_size_mb=round(to_mb(gap_total), 2),
            percentage=round(percentage(gap_total, file_size), 1),
            details=[
                dict(start=gap.start, end=gap.end, size=gap.size, size_mb=round(to_mb(gap.size), 2))
                for gap in gaps
            ],
        ),
        bar=[1 if downloaded else 0 for downloaded in download_bitmap(gaps, file_size, BAR_WIDTH)],
    )


def visualization_as_text(gaps: List[GapRange], file_size: int, downloaded_bytes: int) -> List[str]:
    bar = ''.join('#' if downloaded else ' ' for downloaded in download_bitmap(gaps, file_size, BAR_WIDTH))

    lines = [
        '',
        "=== FILE DOWNLOAD VISUALIZATION ===",
        f"Total size: {file_size} bytes ({to_mb(file_size):.2f} MB)",
        f"Downloaded: {downloaded_bytes} bytes ({to_mb(downloaded_bytes):.2f} MB, "
        f"{percentage(downloaded_bytes, file_size):.1f}%)",
        f"[{bar}]",
        '',
    ]

    if len(gaps) > 0:
        gap_total = total_gap_size(gaps)

        lines.append(f"Gaps: {len(gaps)}")
        lines.append(
            f"Total gap size: {to_mb(gap_total):.2f} MB ({percentage(gap_total, file_size):.1f}% of file)"
        )
        lines.append('')

    return lines
