from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from .constants import BLOCKSIZE, HEADER_SIZE, PAD_BYTE
from .errors import ArError, NoActiveEntryError, UnexpectedEOFError
from .header import EntryMetadata, decode_header
from .magic import check_magic, read_full


# Reader phases. A latched error overrides all of them until reset().
PHASE_FRESH = 0       # global magic not checked yet
PHASE_POSITIONED = 1  # on a header boundary
PHASE_IN_PAYLOAD = 2  # section open, `remaining` bytes left
PHASE_EXHAUSTED = 3   # clean end of archive


@dataclass
class _ReaderState:
    phase: int = PHASE_FRESH
    entry: Optional[EntryMetadata] = None
    remaining: int = 0
    # one byte read while looking for padding that belongs to the next header
    lookahead: bytes = b""
    error: Optional[BaseException] = None
    # bumped on every advance; payload handles compare against it
    generation: int = 0


class EntryStream(io.RawIOBase):
    """Read-only handle on the payload of one archive member.

    The handle is only valid until its reader advances or is reset; after
    that every read raises NoActiveEntryError instead of returning bytes of
    a later member.
    """

    def __init__(self, reader: "ArchiveReader", state: _ReaderState, generation: int):
        super().__init__()
        self._reader = reader
        self._owner = state
        self._generation = generation
        self.metadata = state.entry

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self._reader._state is not self._owner or self._owner.generation != self._generation:
            raise NoActiveEntryError("entry is no longer active")
        return self._reader.readinto(b)


class ArchiveReader:
    """Sequential reader for ar archives.

    Usage:
        reader = ArchiveReader(stream)
        for meta in reader:
            data = reader.read()

    Members are visited strictly in order. Payload bytes not consumed before
    the next advance are skipped.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self._state = _ReaderState()

    def reset(self, stream: BinaryIO) -> None:
        """Start over on a new stream, dropping all state including a latched error."""
        self.stream = stream
        self._state = _ReaderState()

    @property
    def entry(self) -> Optional[EntryMetadata]:
        """Metadata of the member whose payload is currently open."""
        st = self._state
        return st.entry if st.phase == PHASE_IN_PAYLOAD else None

    def __iter__(self) -> Iterator[EntryMetadata]:
        while True:
            meta = self.next()
            if meta is None:
                return
            yield meta

    def next(self) -> Optional[EntryMetadata]:
        """Advance to the next member and return its metadata.

        Returns None at the clean end of the archive.
        """
        st = self._state
        if st.error is not None:
            raise st.error
        if st.phase == PHASE_EXHAUSTED:
            return None
        st.generation += 1
        try:
            if st.phase == PHASE_FRESH:
                check_magic(self.stream)
                st.phase = PHASE_POSITIONED
            elif st.phase == PHASE_IN_PAYLOAD:
                self._close_section(st)
                if st.phase == PHASE_EXHAUSTED:
                    return None
            block = st.lookahead + read_full(self.stream, HEADER_SIZE - len(st.lookahead))
            st.lookahead = b""
            if not block:
                st.phase = PHASE_EXHAUSTED
                return None
            if len(block) != HEADER_SIZE:
                raise UnexpectedEOFError(f"truncated member header ({len(block)} of {HEADER_SIZE} bytes)")
            meta = decode_header(block)
        except (ArError, EOFError, OSError, ValueError) as exc:
            st.error = exc
            raise
        st.phase = PHASE_IN_PAYLOAD
        st.entry = meta
        st.remaining = meta.size
        return meta

    def _close_section(self, st: _ReaderState) -> None:
        # Skip whatever the caller did not drain.
        while st.remaining > 0:
            chunk = self.stream.read(min(st.remaining, BLOCKSIZE))
            if not chunk:
                raise UnexpectedEOFError(f"member payload truncated with {st.remaining} bytes missing")
            st.remaining -= len(chunk)
        st.entry = None
        st.phase = PHASE_POSITIONED

        c = self.stream.read(1)
        if not c:
            st.phase = PHASE_EXHAUSTED
        elif c != PAD_BYTE:
            st.lookahead = c

    def _check_section(self) -> _ReaderState:
        st = self._state
        if st.error is not None:
            raise st.error
        if st.phase != PHASE_IN_PAYLOAD:
            raise NoActiveEntryError()
        return st

    def payload(self) -> EntryStream:
        """Return a file-like handle on the current member's payload."""
        st = self._check_section()
        return EntryStream(self, st, st.generation)

    def readinto(self, b) -> int:
        """Read payload bytes of the current member into b.

        Returns 0 once the member's declared size has been consumed.
        """
        st = self._check_section()
        n = min(len(b), st.remaining)
        if n == 0:
            return 0
        try:
            chunk = self.stream.read(n)
            if not chunk:
                raise UnexpectedEOFError(f"member payload truncated with {st.remaining} bytes missing")
        except (ArError, OSError, ValueError) as exc:
            st.error = exc
            raise
        k = len(chunk)
        memoryview(b).cast("B")[:k] = chunk
        st.remaining -= k
        return k

    def read(self, size: int = -1) -> bytes:
        """Read up to size payload bytes of the current member (all of them if size < 0).

        Returns b"" once the member's declared size has been consumed.
        """
        st = self._check_section()
        n = st.remaining if size is None or size < 0 else min(size, st.remaining)
        try:
            data = read_full(self.stream, n)
            if len(data) != n:
                raise UnexpectedEOFError(f"member payload truncated with {st.remaining - len(data)} bytes missing")
        except (ArError, OSError, ValueError) as exc:
            st.error = exc
            raise
        st.remaining -= n
        return data
