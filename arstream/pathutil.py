from __future__ import annotations

def safe_member_name(name: str) -> str:
    """Validate an archive member name for use as a file name on extraction.

    Rules:
    - Strip surrounding whitespace
    - Reject empty names, '.' and '..'
    - Reject path separators and NUL bytes
    """
    n = name.strip()
    if n in ("", ".", ".."):
        raise ValueError(f"Unusable member name: {name!r}")
    for bad in ("/", "\\", "\x00"):
        if bad in n:
            raise ValueError(f"Member name may not contain {bad!r}: {name!r}")
    return n
