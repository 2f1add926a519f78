from __future__ import annotations

import os
import sys
import time
import argparse
import shutil

from typing import List, Optional

from arstream.errors import ArError
from arstream.header import EntryMetadata, encode_header, metadata_from_stat
from arstream.pathutil import safe_member_name
from arstream.reader import ArchiveReader
from arstream.writer import ArchiveWriter


def _safe_chmod(path: str, mode: Optional[int]) -> None:
    """Best‑effort chmod that never raises.

    Args:
        path: Destination filesystem path to update.
        mode: POSIX permission bits to apply (e.g., 0o644). If None, no change is made.
    """
    if mode is None:
        return
    try:
        os.chmod(path, mode)
    except OSError as exc:
        print(f"Warning: failed to set mode on {path}: {exc}", file=sys.stderr)


def _safe_utime(path: str, mtime: Optional[int]) -> None:
    """Best‑effort utime that never raises.

    Args:
        path: Destination filesystem path to update.
        mtime: Modification time (seconds since epoch), also used as access time.
    """
    if mtime is None:
        return
    try:
        os.utime(path, (mtime, mtime))
    except OSError as exc:
        print(f"Warning: failed to set timestamps on {path}: {exc}", file=sys.stderr)


def _format_entry(e: EntryMetadata) -> str:
    when = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime(e.mtime))
    return f"{e.mode:04o}\t{e.size}\t{when}\t{e.name}"


def _next_nonconflicting_path(path: str) -> str:
    if not os.path.lexists(path):
        return path
    base_dir = os.path.dirname(path)
    root, ext = os.path.splitext(os.path.basename(path))
    i = 1
    while True:
        candidate = os.path.join(base_dir, f"{root} ({i}){ext}")
        if not os.path.lexists(candidate):
            return candidate
        i += 1


def cmd_list(archive: str) -> bool:
    """List archive members.

    Args:
        archive: Path to an ar archive.
    """
    with open(archive, "rb") as f:
        for e in ArchiveReader(f):
            print(_format_entry(e))
    return True


def cmd_extract(archive: str, *, outdir: str = ".", names: Optional[List[str]] = None, exists: str = "rename", quiet: bool = False) -> bool:
    """Extract members of an archive into a directory.

    Args:
        archive: Path to an ar archive.
        outdir: Destination directory, created if missing.
        names: Member names to extract; all members when empty.
        exists: Policy for existing destination files: overwrite, skip, rename or fail.
        quiet: Only print the summary line.
    """
    selected = set(names or [])
    found = set()
    os.makedirs(outdir or ".", exist_ok=True)
    extracted = 0
    skipped = 0
    total_bytes = 0
    t0 = time.time()
    with open(archive, "rb") as f:
        reader = ArchiveReader(f)
        for e in reader:
            if selected and e.name not in selected:
                continue
            found.add(e.name)
            dst = os.path.join(outdir or ".", safe_member_name(e.name))
            if os.path.lexists(dst):
                if exists == "skip":
                    if not quiet:
                        print(f"   skipping: {e.name}")
                    skipped += 1
                    continue
                if exists == "fail":
                    raise FileExistsError(f"Destination exists: {dst}")
                if exists == "rename":
                    dst = _next_nonconflicting_path(dst)
                    if not quiet:
                        print(f"   renamed to: {os.path.basename(dst)}")
            with open(dst, "wb") as out:
                shutil.copyfileobj(reader.payload(), out)
            _safe_chmod(dst, e.mode)
            _safe_utime(dst, e.mtime)
            if not quiet:
                print(f"  inflating: {e.name}")
            extracted += 1
            total_bytes += e.size
    missing_names = selected - found
    for missing in sorted(missing_names):
        print(f"Warning: {missing} not found in archive", file=sys.stderr)
    dt = time.time() - t0
    print(f"Extracted {extracted} file(s), {total_bytes} bytes in {dt:.2f}s" + (f"; skipped {skipped}" if skipped else ""))
    return not missing_names


def cmd_create(output: str, inputs: List[str], *, quiet: bool = False) -> bool:
    """Create an archive from regular files.

    Members are named after the basename of each input. Directories,
    symlinks and special files are refused.

    Args:
        output: Path of the archive to write.
        inputs: Files to store, in order.
        quiet: Only print the summary line.
    """
    members = []
    for p in inputs:
        st = os.lstat(p)
        name = os.path.basename(os.path.normpath(p))
        meta = metadata_from_stat(name, st)
        encode_header(meta)  # refuse before touching output
        members.append((p, meta))

    total_bytes = 0
    with open(output, "wb") as f:
        writer = ArchiveWriter(f)
        for p, meta in members:
            with open(p, "rb") as src:
                writer.write_entry(meta, src)
            total_bytes += meta.size
            if not quiet:
                print(f"     adding: {meta.name}")
    print(f"Wrote {len(members)} file(s), {total_bytes} bytes to {output}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="arstream",
        description="Unix ar archive tool",
        epilog="Only regular files are supported; member names are limited to 16 bytes.",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_list = sub.add_parser("list", help="List archive members")
    ap_list.add_argument("archive", help="Archive path")

    ap_extract = sub.add_parser("extract", help="Extract members")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("names", nargs="*", help="Specific member names to extract")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    ap_extract.add_argument(
        "--exists",
        choices=["overwrite", "skip", "rename", "fail"],
        default="rename",
        help=(
            "What to do if a destination file exists: overwrite, skip, "
            "rename (append ' (n)' before extension), or fail (abort). Default: rename"
        ),
    )

    ap_create = sub.add_parser("create", help="Create archive")
    ap_create.add_argument("output", help="Output archive path")
    ap_create.add_argument("inputs", nargs="+", help="Input files")
    ap_create.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "extract":
            success = cmd_extract(args.archive, outdir=args.outdir, names=args.names, exists=args.exists, quiet=args.quiet)
            sys.exit(0 if success else 1)
        elif args.cmd == "create":
            cmd_create(args.output, args.inputs, quiet=args.quiet)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except EOFError:
        print("Error: not an ar archive (empty file)", file=sys.stderr)
        sys.exit(2)
    except (ArError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
