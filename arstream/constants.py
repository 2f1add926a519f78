# Magic
GLOBAL_MAGIC = b"!<arch>\n"  # 8 bytes at the start of every archive
FILE_MAGIC = b"\x60\x0a"     # 2 bytes closing every member header ("`\n")

PAD_BYTE = b"\n"

# Member header (fixed 60 bytes, ASCII, space padded, left justified)
HEADER_SIZE = 60

# (offset, width) of each header field
NAME_FIELD = (0, 16)
MTIME_FIELD = (16, 12)
OWNER_FIELD = (28, 6)
GROUP_FIELD = (34, 6)
MODE_FIELD = (40, 8)
SIZE_FIELD = (48, 10)
MAGIC_FIELD = (58, 2)

MAX_NAME_LEN = NAME_FIELD[1]

# Mode bits
MODE_PERM = 0o777
S_IFMT = 0o170000
S_IFREG = 0o100000


BLOCKSIZE = 65536  # payload copy chunk
