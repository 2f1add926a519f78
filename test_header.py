from __future__ import annotations

import dataclasses
import io
import os
import tempfile
import unittest

from arstream.errors import CorruptArchiveError, FeatureNotImplementedError, UnexpectedEOFError
from arstream.header import EntryMetadata, decode_header, encode_header, metadata_from_stat, parse_file_mode
from arstream.magic import check_magic, has_magic


DEBIAN_BINARY = b"debian-binary   1385068169  0     0     100644  4         `\n"


def _header(mode: bytes = b"100644", size: bytes = b"4", mtime: bytes = b"1385068169", owner: bytes = b"0", group: bytes = b"0") -> bytes:
    return (
        b"debian-binary".ljust(16)
        + mtime.ljust(12)
        + owner.ljust(6)
        + group.ljust(6)
        + mode.ljust(8)
        + size.ljust(10)
        + b"`\n"
    )


class HeaderDecodeTests(unittest.TestCase):
    def test_regular_file_mode(self):
        meta = decode_header(DEBIAN_BINARY)
        self.assertEqual(meta.name, "debian-binary")
        self.assertEqual(meta.mtime, 1385068169)
        self.assertEqual(meta.mode, 0o644)
        self.assertEqual(meta.size, 4)
        self.assertEqual(meta.owner, 0)
        self.assertEqual(meta.group, 0)

    def test_untyped_mode(self):
        meta = decode_header(_header(mode=b"644"))
        self.assertEqual(meta.mode, 0o644)

    def test_non_regular_file_rejected(self):
        with self.assertRaises(FeatureNotImplementedError) as cm:
            decode_header(_header(mode=b"120644"))
        self.assertEqual(str(cm.exception), "feature not implemented: non-regular files")

    def test_invalid_mode_bits(self):
        with self.assertRaises(CorruptArchiveError) as cm:
            decode_header(_header(mode=b"220644"))
        self.assertEqual(str(cm.exception), "corrupt archive: invalid file mode")

    def test_non_octal_mode(self):
        with self.assertRaises(CorruptArchiveError):
            decode_header(_header(mode=b"644x"))
        with self.assertRaises(CorruptArchiveError):
            parse_file_mode(b"698")

    def test_bad_per_file_magic(self):
        block = DEBIAN_BINARY[:58] + b"\n\n"
        with self.assertRaises(CorruptArchiveError) as cm:
            decode_header(block)
        self.assertEqual(cm.exception.reason, "per-file magic not found")

    def test_unparsable_numbers(self):
        for kwargs in (
            {"mtime": b"13850x8169"},
            {"size": b"four"},
            {"size": b"-4"},
            {"size": b"1_000"},
            {"owner": b"root"},
            {"group": b"0x10"},
            {"mtime": b""},
        ):
            with self.subTest(**{k: v.decode() for k, v in kwargs.items()}):
                with self.assertRaises(CorruptArchiveError):
                    decode_header(_header(**kwargs))

    def test_blank_owner_and_group(self):
        meta = decode_header(_header(owner=b"", group=b""))
        self.assertIsNone(meta.owner)
        self.assertIsNone(meta.group)

    def test_wrong_block_length(self):
        with self.assertRaises(ValueError):
            decode_header(DEBIAN_BINARY[:59])

    def test_metadata_is_a_plain_record(self):
        meta = decode_header(DEBIAN_BINARY)
        self.assertEqual(
            dataclasses.asdict(meta),
            {"name": "debian-binary", "size": 4, "mode": 0o644, "mtime": 1385068169, "owner": 0, "group": 0},
        )
        self.assertFalse(hasattr(meta, "is_dir"))
        self.assertFalse(hasattr(meta, "modified"))


class HeaderEncodeTests(unittest.TestCase):
    def test_layout(self):
        meta = EntryMetadata(name="debian-binary", size=4, mode=0o644, mtime=1385068169)
        self.assertEqual(encode_header(meta), b"debian-binary   1385068169  0     0     644     4         `\n")

    def test_owner_and_group_written(self):
        meta = EntryMetadata(name="a", size=0, mode=0o600, mtime=1, owner=1000, group=100)
        block = encode_header(meta)
        self.assertEqual(block[28:34], b"1000  ")
        self.assertEqual(block[34:40], b"100   ")
        self.assertEqual(decode_header(block), meta)

    def test_roundtrip(self):
        samples = [
            EntryMetadata(name="debian-binary", size=4, mode=0o644, mtime=1385068169),
            EntryMetadata(name="x" * 16, size=9999999999, mode=0o777, mtime=0),
            EntryMetadata(name="data.tar.xz", size=0, mode=0o100600, mtime=1700000000),
        ]
        for meta in samples:
            with self.subTest(name=meta.name):
                got = decode_header(encode_header(meta))
                self.assertEqual(got.name, meta.name)
                self.assertEqual(got.size, meta.size)
                self.assertEqual(got.mode, meta.mode & 0o777)
                self.assertEqual(got.mtime, meta.mtime)

    def test_fractional_mtime_truncated(self):
        meta = EntryMetadata(name="a", size=0, mtime=1385068169.75)
        self.assertEqual(decode_header(encode_header(meta)).mtime, 1385068169)

    def test_name_too_long(self):
        with self.assertRaises(FeatureNotImplementedError):
            encode_header(EntryMetadata(name="x" * 17))
        # the limit is in bytes, not characters
        with self.assertRaises(FeatureNotImplementedError):
            encode_header(EntryMetadata(name="é" * 9))

    def test_non_regular_mode_refused(self):
        with self.assertRaises(FeatureNotImplementedError):
            encode_header(EntryMetadata(name="link", mode=0o120777))

    def test_negative_size(self):
        with self.assertRaises(ValueError):
            encode_header(EntryMetadata(name="a", size=-1))

    def test_size_overflow(self):
        with self.assertRaises(FeatureNotImplementedError):
            encode_header(EntryMetadata(name="a", size=10 ** 10))


class MetadataFromStatTests(unittest.TestCase):
    def test_regular_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "f.txt")
            with open(path, "wb") as fh:
                fh.write(b"hello")
            os.utime(path, (1385068169, 1385068169))
            meta = metadata_from_stat("f.txt", os.stat(path))
            self.assertEqual(meta.name, "f.txt")
            self.assertEqual(meta.size, 5)
            self.assertEqual(meta.mtime, 1385068169)
            self.assertEqual(meta.mode & ~0o777, 0)

    def test_directory_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FeatureNotImplementedError):
                metadata_from_stat("d", os.stat(tmp))


class MagicTests(unittest.TestCase):
    def test_valid(self):
        check_magic(io.BytesIO(b"!<arch>\n"))
        self.assertTrue(has_magic(io.BytesIO(b"!<arch>\nrest")))

    def test_wrong_bytes(self):
        with self.assertRaises(CorruptArchiveError) as cm:
            check_magic(io.BytesIO(b"a" * 8))
        self.assertEqual(str(cm.exception), "corrupt archive: global archive header not found")
        self.assertFalse(has_magic(io.BytesIO(b"a" * 8)))

    def test_one_byte(self):
        with self.assertRaises(UnexpectedEOFError) as cm:
            check_magic(io.BytesIO(b"!"))
        self.assertEqual(str(cm.exception), "unexpected end of stream")
        self.assertFalse(has_magic(io.BytesIO(b"!")))

    def test_empty(self):
        with self.assertRaises(EOFError):
            check_magic(io.BytesIO(b""))
        self.assertFalse(has_magic(io.BytesIO(b"")))

    def test_truncation_is_not_clean_eof(self):
        try:
            check_magic(io.BytesIO(b"!<ar"))
        except EOFError:
            self.fail("truncated magic reported as clean end of stream")
        except UnexpectedEOFError:
            pass


if __name__ == "__main__":
    unittest.main()
