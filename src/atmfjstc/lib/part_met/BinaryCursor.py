"""
This module contains the `BinaryCursor` class, a sequential, fail-fast reader for the little-endian fields that make up
a ``.part.met`` file.
"""

from typing import Union, BinaryIO, Optional, AnyStr, ContextManager
from contextlib import contextmanager
from os import SEEK_SET

from atmfjstc.lib.binary_utils.BinaryReader import BinaryReader, BinaryReaderMissingDataError, \
    BinaryReaderReadPastEndError

from .errors import TruncatedInputError, SeekError


class BinaryCursor:
    """
    This class wraps a little-endian `BinaryReader` over a binary file object (or a `bytes` value), with the fields and
    absolute seeks that the ``.part.met`` decoder needs.

    Every read consumes exactly the requested number of bytes. If the data runs out, `TruncatedInputError` is raised
    and the cursor should not be used any further; there is no recovery from a partial record.
    """

    _reader: BinaryReader

    def __init__(self, data_or_fileobj: Union[bytes, BinaryIO]):
        self._reader = BinaryReader(data_or_fileobj, big_endian=False)

    def name(self) -> Optional[AnyStr]:
        return self._reader.name()

    def seekable(self) -> bool:
        return self._reader.seekable()

    def tell(self) -> int:
        return self._reader.tell()

    def total_size(self) -> int:
        return self._reader.total_size()

    def seek(self, offset: int, meaning: Optional[str] = None) -> 'BinaryCursor':
        """
        Moves the cursor to an absolute offset from the start of the data.

        Seeking exactly to the end of the data is allowed (a subsequent read will fail), seeking past it is not.

        Args:
            offset: The target offset.
            meaning: An indication as to what is expected at the target offset (e.g. "tag count"). It is used in the
                text of any exceptions that may be thrown.

        Raises:
            SeekError: If the offset is negative, lies beyond the end of the data, or the stream is not seekable.
        """

        if not self.seekable():
            raise SeekError(offset, None, meaning, reason="the stream is not seekable")
        if offset < 0:
            raise SeekError(offset, None, meaning, reason="the offset is negative")

        total_size = self.total_size()
        if offset > total_size:
            raise SeekError(offset, total_size, meaning)

        self._reader.seek(offset, SEEK_SET)

        return self

    def read_amount(self, n_bytes: int, meaning: Optional[str] = None) -> bytes:
        """
        Reads exactly `n_bytes` from the underlying stream.

        Raises:
            TruncatedInputError: If the data ends before `n_bytes` could be read.
        """
        with _truncation_errors():
            return self._reader.read_amount(n_bytes, meaning=meaning)

    def read_uint8(self, meaning: Optional[str] = None) -> int:
        return self._read_int(1, meaning or 'byte')

    def read_uint16(self, meaning: Optional[str] = None) -> int:
        return self._read_int(2, meaning or 'word')

    def read_uint32(self, meaning: Optional[str] = None) -> int:
        return self._read_int(4, meaning or 'dword')

    def read_length_prefixed_bytes(self, meaning: Optional[str] = None) -> bytes:
        """
        Reads a byte string preceded by its length, stored as a 16-bit little-endian int.

        This is the only string encoding used in ``.part.met`` files. Note that there is no null terminator and the
        string may contain any byte values.
        """
        with _truncation_errors():
            return self._reader.read_length_prefixed_bytes(meaning=meaning or 'string', length_bytes=2)

    def _read_int(self, n_bytes: int, meaning: str) -> int:
        with _truncation_errors():
            return self._reader.read_fixed_size_int(n_bytes, meaning=meaning)


@contextmanager
def _truncation_errors() -> ContextManager[None]:
    try:
        yield
    except BinaryReaderMissingDataError as e:
        raise TruncatedInputError(e.position, e.expected_length, 0, e.meaning) from e
    except BinaryReaderReadPastEndError as e:
        raise TruncatedInputError(e.position, e.expected_length, e.actual_length, e.meaning) from e
