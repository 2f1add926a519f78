from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass
from typing import Optional

from .constants import (
    FILE_MAGIC,
    GROUP_FIELD,
    HEADER_SIZE,
    MAGIC_FIELD,
    MAX_NAME_LEN,
    MODE_FIELD,
    MODE_PERM,
    MTIME_FIELD,
    NAME_FIELD,
    OWNER_FIELD,
    S_IFMT,
    S_IFREG,
    SIZE_FIELD,
)
from .errors import CorruptArchiveError, FeatureNotImplementedError


# Member header (fixed 60 bytes)
#  - name[16]   ASCII, left justified, space padded
#  - mtime[12]  decimal seconds since epoch
#  - owner[6]   decimal uid
#  - group[6]   decimal gid
#  - mode[8]    octal
#  - size[10]   decimal payload length
#  - magic[2]   "`\n"

_DECIMAL = re.compile(rb"[+-]?[0-9]+")
_UNSIGNED = re.compile(rb"[0-9]+")
_OCTAL = re.compile(rb"[0-7]+")

_MAX_ID = 10 ** OWNER_FIELD[1] - 1


@dataclass
class EntryMetadata:
    name: str
    size: int = 0
    mode: int = 0o644
    mtime: int = 0
    owner: Optional[int] = None
    group: Optional[int] = None


def _field(block: bytes, layout) -> bytes:
    off, width = layout
    return block[off : off + width].strip()


def _parse_number(text: bytes, pattern, base: int, what: str) -> int:
    if pattern.fullmatch(text) is None:
        shown = text.decode("ascii", "replace")
        raise CorruptArchiveError(f"parsing {what} {shown!r}: invalid base-{base} integer")
    return int(text, base)


def _parse_optional_id(text: bytes, what: str) -> Optional[int]:
    if not text:
        return None
    return _parse_number(text, _UNSIGNED, 10, what)


def parse_file_mode(text: bytes) -> int:
    """Parse an octal mode field and return its permission bits.

    A mode may carry the regular-file type or no type at all; other file
    types raise FeatureNotImplementedError and bits outside permission and
    type raise CorruptArchiveError.
    """
    mode = _parse_number(text, _OCTAL, 8, "mode")
    if mode & ~(MODE_PERM | S_IFMT):
        raise CorruptArchiveError("invalid file mode")
    if mode & S_IFMT not in (0, S_IFREG):
        raise FeatureNotImplementedError("non-regular files")
    return mode & MODE_PERM


def decode_header(block: bytes) -> EntryMetadata:
    if len(block) != HEADER_SIZE:
        raise ValueError(f"member header must be {HEADER_SIZE} bytes, got {len(block)}")
    off, width = MAGIC_FIELD
    if block[off : off + width] != FILE_MAGIC:
        raise CorruptArchiveError("per-file magic not found")

    try:
        name = _field(block, NAME_FIELD).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptArchiveError(f"member name is not valid text: {exc}") from exc
    mtime = _parse_number(_field(block, MTIME_FIELD), _DECIMAL, 10, "mtime")
    owner = _parse_optional_id(_field(block, OWNER_FIELD), "owner id")
    group = _parse_optional_id(_field(block, GROUP_FIELD), "group id")
    mode = parse_file_mode(_field(block, MODE_FIELD))
    size = _parse_number(_field(block, SIZE_FIELD), _UNSIGNED, 10, "size")

    return EntryMetadata(name=name, size=size, mode=mode, mtime=mtime, owner=owner, group=group)


def _put(block: bytearray, layout, text: str, what: str) -> None:
    off, width = layout
    raw = text.encode("ascii")
    if len(raw) > width:
        raise FeatureNotImplementedError(f"{what} {text} does not fit in {width} bytes")
    block[off : off + len(raw)] = raw


def encode_header(meta: EntryMetadata) -> bytes:
    name = meta.name.encode("utf-8")
    if len(name) > MAX_NAME_LEN:
        raise FeatureNotImplementedError(f"file names longer than {MAX_NAME_LEN} bytes")
    if meta.size < 0:
        raise ValueError("size must be non-negative")
    if meta.mode & S_IFMT not in (0, S_IFREG):
        raise FeatureNotImplementedError("non-regular files")

    block = bytearray(b" " * HEADER_SIZE)
    block[0 : len(name)] = name
    _put(block, MTIME_FIELD, str(int(meta.mtime)), "mtime")
    _put(block, OWNER_FIELD, str(meta.owner) if meta.owner is not None else "0", "owner id")
    _put(block, GROUP_FIELD, str(meta.group) if meta.group is not None else "0", "group id")
    _put(block, MODE_FIELD, format(meta.mode & MODE_PERM, "o"), "mode")
    _put(block, SIZE_FIELD, str(meta.size), "size")
    off, width = MAGIC_FIELD
    block[off : off + width] = FILE_MAGIC
    return bytes(block)


def _fitting_id(value: Optional[int]) -> Optional[int]:
    # ids wider than the 6-byte field are stored as 0
    if value is None or not 0 <= value <= _MAX_ID:
        return None
    return value


def metadata_from_stat(name: str, st: os.stat_result) -> EntryMetadata:
    """Describe a filesystem object as an archive member.

    Only regular files can be stored; anything else is rejected rather than
    coerced into a plain file.
    """
    if not stat.S_ISREG(st.st_mode):
        raise FeatureNotImplementedError("non-regular files")
    return EntryMetadata(
        name=name,
        size=st.st_size,
        mode=stat.S_IMODE(st.st_mode) & MODE_PERM,
        mtime=int(st.st_mtime),
        owner=_fitting_id(getattr(st, "st_uid", None)),
        group=_fitting_id(getattr(st, "st_gid", None)),
    )
