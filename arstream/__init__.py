"""
arstream: streaming reader and writer for Unix ar archives.

The ar container is the global magic "!<arch>\\n" followed by members, each a
fixed 60-byte ASCII header, the raw payload, and a newline pad byte whenever
the archive offset would otherwise be odd. It is the outer container of .deb
packages.

- Header codec (decode_header/encode_header) with strict mode policy: only
  regular files are accepted.
- ArchiveReader walks members in order and exposes each payload as a bounded
  stream; nothing is buffered beyond one member header.
- ArchiveWriter appends members, copying exactly the declared size.
- Errors latch: after any failure a reader or writer keeps raising the same
  error until reset() binds it to a fresh stream.

No extended-name tables, no special files, no seeking.
"""

__version__ = "0.1"

from .errors import (
    ArError,
    CorruptArchiveError,
    FeatureNotImplementedError,
    NoActiveEntryError,
    UnexpectedEOFError,
)
from .header import EntryMetadata, decode_header, encode_header
from .magic import check_magic, has_magic
from .reader import ArchiveReader, EntryStream
from .writer import ArchiveWriter

__all__ = [
    "constants",
    "header",
    "magic",
    "reader",
    "writer",
    "cli",
    "ArError",
    "CorruptArchiveError",
    "FeatureNotImplementedError",
    "NoActiveEntryError",
    "UnexpectedEOFError",
    "EntryMetadata",
    "decode_header",
    "encode_header",
    "check_magic",
    "has_magic",
    "ArchiveReader",
    "EntryStream",
    "ArchiveWriter",
]
