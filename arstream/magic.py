from __future__ import annotations

from typing import BinaryIO

from .constants import GLOBAL_MAGIC
from .errors import ArError, CorruptArchiveError, UnexpectedEOFError


def read_full(f: BinaryIO, n: int) -> bytes:
    """Read exactly n bytes unless the stream ends first.

    Returns fewer bytes only when the stream is exhausted; short reads from
    pipes and sockets are retried until n bytes arrive.
    """
    buf = bytearray()
    while len(buf) < n:
        chunk = f.read(n - len(buf))
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


def check_magic(f: BinaryIO) -> None:
    m = read_full(f, len(GLOBAL_MAGIC))
    if not m:
        raise EOFError("end of stream")
    if len(m) != len(GLOBAL_MAGIC):
        raise UnexpectedEOFError()
    if m != GLOBAL_MAGIC:
        raise CorruptArchiveError("global archive header not found")


def has_magic(f: BinaryIO) -> bool:
    try:
        check_magic(f)
    except (ArError, EOFError, OSError):
        return False
    return True
