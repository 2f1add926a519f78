from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from .constants import BLOCKSIZE, GLOBAL_MAGIC, PAD_BYTE
from .errors import ArError, UnexpectedEOFError
from .header import EntryMetadata, encode_header


@dataclass
class _WriterState:
    magic_written: bool = False
    offset: int = 0  # bytes emitted since the start of the archive
    error: Optional[BaseException] = None


class ArchiveWriter:
    """Sequential writer for ar archives.

    The global magic is emitted together with the first member. Each member
    is a 60-byte header, exactly `size` payload bytes, and a newline when
    needed to bring the archive offset back to an even value.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self._state = _WriterState()

    def reset(self, stream: BinaryIO) -> None:
        self.stream = stream
        self._state = _WriterState()

    @property
    def offset(self) -> int:
        return self._state.offset

    def _emit(self, data: bytes) -> int:
        # Raw sinks may accept only part of a write.
        view = memoryview(data)
        while view:
            n = self.stream.write(view)
            if not n:
                raise OSError(f"sink accepted no bytes with {len(view)} left to write")
            self._state.offset += n
            view = view[n:]
        return len(data)

    def _copy_payload(self, source: BinaryIO, size: int) -> int:
        copied = 0
        while copied < size:
            chunk = source.read(min(BLOCKSIZE, size - copied))
            if not chunk:
                raise UnexpectedEOFError(f"payload source ended after {copied} of {size} bytes")
            self._emit(chunk)
            copied += len(chunk)
        return copied

    def write_entry(self, meta: EntryMetadata, source: Union[BinaryIO, bytes, bytearray]) -> int:
        """Append one member and return the number of bytes written to the stream.

        Exactly meta.size bytes are taken from source; a source that ends
        early is an error, missing bytes are never made up.
        """
        st = self._state
        if st.error is not None:
            raise st.error
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(source)

        written = 0
        try:
            if not st.magic_written:
                written += self._emit(GLOBAL_MAGIC)
                st.magic_written = True
            written += self._emit(encode_header(meta))
            written += self._copy_payload(source, meta.size)
            if st.offset % 2:
                written += self._emit(PAD_BYTE)
            self.stream.flush()
        except (ArError, OSError, ValueError) as exc:
            st.error = exc
            raise
        return written
