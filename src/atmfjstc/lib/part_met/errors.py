"""
Exceptions raised while decoding ``.part.met`` data.

All of them derive from `PartMetError`. None of them is recoverable within a single decode: the format has no
resynchronization markers, so once any of these is raised, nothing past the failure point can be trusted.
"""

from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .tags import Tag


class PartMetError(ValueError):
    """
    Base class for all errors signaling that the data does not match the ``.part.met`` format.
    """


class UnrecognizedFormatError(PartMetError):
    format_byte: Optional[int]

    def __init__(self, format_byte: Optional[int]):
        self.format_byte = format_byte

        found_text = f"0x{format_byte:02X}" if format_byte is not None else "nothing"

        super().__init__(
            f"Unrecognized or invalid file format (expected format tag 0xE0 or 0xE1, found {found_text})"
        )


class TruncatedInputError(PartMetError):
    position: int
    expected_length: int
    actual_length: int
    meaning: Optional[str]

    def __init__(self, position: int, expected_length: int, actual_length: int, meaning: Optional[str]):
        self.position = position
        self.expected_length = expected_length
        self.actual_length = actual_length
        self.meaning = meaning

        super().__init__(
            f"At position {position}, expected {expected_length} "
            f"bytes{f' for {meaning}' if meaning is not None else ''}"
            f", but {f'only {actual_length} were found' if actual_length > 0 else 'the data ends'}"
        )


class SeekError(PartMetError):
    offset: int
    total_size: Optional[int]
    meaning: Optional[str]

    def __init__(self, offset: int, total_size: Optional[int], meaning: Optional[str], reason: Optional[str] = None):
        self.offset = offset
        self.total_size = total_size
        self.meaning = meaning

        if reason is None:
            reason = f"the data is only {total_size} bytes long" if total_size is not None else "it is unreachable"

        super().__init__(
            f"Cannot seek to offset {offset}{f' for {meaning}' if meaning is not None else ''}: {reason}"
        )


class UnrecognizedTagTypeError(PartMetError):
    """
    Raised when a tag record has a type code other than 2 (string) or 3 (integer).

    Reading of the tag stream stops here. The tags decoded before the bad record are still valid and are made available
    in the `decoded_tags` attribute (when the error is raised by a function that reads multiple tags).
    """

    type_code: int
    position: int
    decoded_tags: Sequence['Tag']

    def __init__(self, type_code: int, position: int, decoded_tags: Sequence['Tag'] = ()):
        self.type_code = type_code
        self.position = position
        self.decoded_tags = tuple(decoded_tags)

        super().__init__(f"At position {position}, found unrecognized tag type: {type_code}")

    def with_decoded_tags(self, decoded_tags: Sequence['Tag']) -> 'UnrecognizedTagTypeError':
        return UnrecognizedTagTypeError(self.type_code, self.position, decoded_tags)
