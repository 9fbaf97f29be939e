"""
This package decodes the ``.part.met`` files that eDonkey2000, Overnet and eMule keep alongside each partial download.

A ``.part.met`` file describes an in-progress download: the ED2K hash of the content, and a list of tags holding the
file name, size, download status, the ranges still missing ("gaps") and other metadata. Two versions of the format are
supported, 14.0 (format tag 0xE0) and 14.1 (format tag 0xE1).

The main class of interest is `PartMetFile`::

    with PartMetFile('path/to/file.part.met') as met:
        print(met.version.label, met.content_hash)

        for tag, category in met.classified_tags():
            print(category, tag)

        print(met.gaps)

Note that the file is read entirely upon construction, so the object remains usable after it is closed. This package
does not offer functionality for writing ``.part.met`` files.
"""

__version__ = '1.0.0'


import logging

from typing import AnyStr, BinaryIO, Iterable, List, Optional, Tuple, Union, ContextManager
from os import PathLike
from io import IOBase

from .BinaryCursor import BinaryCursor
from .errors import PartMetError, UnrecognizedFormatError, TruncatedInputError, SeekError, UnrecognizedTagTypeError
from .header import PartMetVersion, FormatHeader, resolve_format_header, read_content_hash, read_tag_count, \
    format_content_hash
from .tags import Tag, TagType, StringTag, IntegerTag, read_tag, read_tags, encode_tag
from .classify import TagCategory, SpecialTagId, GapKind, classify_tag, describe_tag
from .gaps import GapRange, DownloadProgress, collect_gaps, download_bitmap, DEFAULT_BITMAP_WIDTH


_log = logging.getLogger(__name__)


class PartMetFile(ContextManager['PartMetFile']):
    """
    This class provides access to the content of a ``.part.met`` file.

    The file is decoded in its entirety as soon as the object is constructed. Afterwards, the following are available:

    - `header`: A `FormatHeader` with the format version and the offsets of the fixed fields
    - `version`: The `PartMetVersion` (use ``version.label`` for the "14.0"/"14.1" text)
    - `raw_content_hash`, `content_hash`: The ED2K hash of the content, raw and as uppercase hex
    - `tag_count`: The number of tags, as declared in the file
    - `tags`: The decoded tags, in file order (see also `decoded_tags`)
    - `gaps`, `file_size`, `downloaded_bytes`, `progress`: Data derived from the tags

    If the header is valid but the tag stream is broken, construction still succeeds, so that the header data remains
    available. The error is raised upon accessing `tags` or any of the data derived from them.

    A `PartMetFile` can be either closed manually or used as a context manager. If decoding fails, a file opened by the
    constructor is closed before the exception propagates.
    """

    _fileobj: Optional[BinaryIO] = None
    _fileobj_owned: bool = False

    _header: FormatHeader
    _raw_content_hash: bytes
    _tag_count: int
    _tags: Tuple[Tag, ...] = ()
    _tag_stream_error: Optional[PartMetError] = None
    _file_name: Optional[AnyStr] = None

    def __init__(self, path_or_fileobj: Union[PathLike, AnyStr, BinaryIO]):
        """
        Opens and decodes a ``.part.met`` file.

        Args:
            path_or_fileobj: Either a filename, or an open binary file object. A file object must be seekable and is
                read from its start regardless of its current position. It is not closed when the context ends.

        Raises:
            PartMetFileError: If the header of the data is not valid. The underlying `PartMetError` is
                available as the ``__cause__``.
            OSError: If the file could not be opened or read.
        """

        if isinstance(path_or_fileobj, IOBase):
            if not path_or_fileobj.seekable():
                raise ValueError("File object must be seekable")

            self._fileobj = path_or_fileobj
        else:
            self._fileobj = open(path_or_fileobj, 'rb')
            self._fileobj_owned = True

        try:
            self._read_file()
        except BaseException:
            self.__exit__(None, None, None)
            raise

    @property
    def header(self) -> FormatHeader:
        return self._header

    @property
    def version(self) -> PartMetVersion:
        return self._header.version

    @property
    def raw_content_hash(self) -> bytes:
        return self._raw_content_hash

    @property
    def content_hash(self) -> str:
        return format_content_hash(self._raw_content_hash)

    @property
    def tag_count(self) -> int:
        return self._tag_count

    @property
    def tags(self) -> Tuple[Tag, ...]:
        """
        The decoded tags, in file order.

        Raises:
            PartMetFileError: If the tag stream is broken. The tags before the failure point are still available
                through `decoded_tags`.
        """
        if self._tag_stream_error is not None:
            raise PartMetFileError(self._file_name) from self._tag_stream_error

        return self._tags

    @property
    def decoded_tags(self) -> Tuple[Tag, ...]:
        """
        The tags that could be decoded, i.e. all of them, or just those before the failure point if the tag stream is
        broken. Unlike `tags`, this never raises.
        """
        return self._tags

    @property
    def tag_stream_error(self) -> Optional[PartMetError]:
        return self._tag_stream_error

    def classified_tags(self) -> Iterable[Tuple[Tag, TagCategory]]:
        for tag in self.tags:
            yield tag, classify_tag(tag)

    def find_special_tag(self, tag_id: int, tag_type: Optional[TagType] = None) -> Optional[Tag]:
        """
        Finds the first special tag with a given ID (and, optionally, type).
        """
        for tag in self.tags:
            if (classify_tag(tag) == TagCategory.SPECIAL) and (tag.name[0] == tag_id) and \
                    ((tag_type is None) or (tag.tag_type == tag_type)):
                return tag

        return None

    @property
    def filename(self) -> Optional[str]:
        tag = self.find_special_tag(SpecialTagId.FILENAME, TagType.STRING)

        return tag.value if tag is not None else None

    @property
    def last_seen_complete(self) -> Optional[int]:
        """
        The last time the complete file was seen on the network, as a UNIX timestamp.
        """
        tag = self.find_special_tag(SpecialTagId.LAST_SEEN_COMPLETE, TagType.INTEGER)

        return tag.value if tag is not None else None

    @property
    def file_size(self) -> int:
        return self._last_special_int(SpecialTagId.FILE_SIZE)

    @property
    def downloaded_bytes(self) -> int:
        return self._last_special_int(SpecialTagId.DOWNLOADED_BYTES)

    @property
    def progress(self) -> DownloadProgress:
        return DownloadProgress(self.file_size, self.downloaded_bytes)

    @property
    def gaps(self) -> List[GapRange]:
        return collect_gaps(self.tags)

    def download_bitmap(self, width: int = DEFAULT_BITMAP_WIDTH) -> List[bool]:
        return download_bitmap(self.gaps, self.file_size, width)

    def close(self):
        """
        Closes the underlying file object.

        All the decoded data remains available. Note that this closes the file object regardless of whether it was
        opened by `PartMetFile` or received from elsewhere!
        """
        if self._fileobj is not None:
            self._fileobj.close()

    def __enter__(self) -> 'PartMetFile':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if (not self._fileobj_owned) or (self._fileobj is None) or self._fileobj.closed:
            return

        self._fileobj.close()

    def _last_special_int(self, tag_id: int) -> int:
        value = 0

        for tag in self.tags:
            if isinstance(tag, IntegerTag) and (classify_tag(tag) == TagCategory.SPECIAL) and (tag.name[0] == tag_id):
                value = tag.value

        return value

    def _read_file(self):
        cursor = BinaryCursor(self._fileobj)
        self._file_name = cursor.name()

        try:
            self._header = resolve_format_header(cursor)
            self._raw_content_hash = read_content_hash(cursor, self._header)
            self._tag_count = read_tag_count(cursor, self._header)
        except PartMetError as e:
            raise PartMetFileError(self._file_name) from e

        _log.debug("Reading %d tags from offset %d", self._tag_count, cursor.tell())

        try:
            self._tags = tuple(read_tags(cursor, self._tag_count))
        except UnrecognizedTagTypeError as e:
            self._tags = e.decoded_tags
            self._tag_stream_error = e
        except PartMetError as e:
            self._tag_stream_error = e


class PartMetFileError(PartMetError):
    """
    Raised by `PartMetFile` when the file cannot be decoded. The specific error is available as the ``__cause__``.
    """

    def __init__(self, file_name: Optional[AnyStr]):
        quoted_name = f" '{file_name}'" if file_name is not None else ''
        super().__init__(f"File{quoted_name} is not a valid .part.met file")


__all__ = [
    'PartMetFile', 'PartMetFileError',
    'PartMetError', 'UnrecognizedFormatError', 'TruncatedInputError', 'SeekError', 'UnrecognizedTagTypeError',
    'BinaryCursor',
    'PartMetVersion', 'FormatHeader', 'resolve_format_header', 'read_content_hash', 'read_tag_count',
    'format_content_hash',
    'Tag', 'TagType', 'StringTag', 'IntegerTag', 'read_tag', 'read_tags', 'encode_tag',
    'TagCategory', 'SpecialTagId', 'GapKind', 'classify_tag', 'describe_tag',
    'GapRange', 'DownloadProgress', 'collect_gaps', 'download_bitmap',
]
