import gzip
import os
import sys
from typing import Iterator, List, Optional


def random_u64() -> int:
    """Draw a random 64-bit integer from the OS entropy source."""
    return int.from_bytes(os.urandom(8), byteorder='little')


def read_lines(filename: Optional[str] = None, chunk_size: int = 10000) -> Iterator[List[str]]:
    """Read items from a text file, one per line, in chunks.

    Files ending in .gz are decompressed on the fly. With no filename (or
    "-") items are read from stdin. Trailing newlines are stripped and blank
    lines are skipped.

    Args:
        filename: Path to the input file, or None/"-" for stdin
        chunk_size: Maximum number of items per yielded chunk

    Yields:
        Lists of at most chunk_size items
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    if filename is None or filename == "-":
        yield from _chunked(sys.stdin, chunk_size)
        return

    # Check if file is gzipped
    is_gzipped = filename.endswith(".gz")
    opener = gzip.open if is_gzipped else open
    mode = "rt" if is_gzipped else "r"  # text mode for gzip

    with opener(filename, mode, encoding="utf-8") as file:
        yield from _chunked(file, chunk_size)


def _chunked(lines, chunk_size: int) -> Iterator[List[str]]:
    records = []
    for line in lines:
        item = line.rstrip("\r\n")
        if not item.strip():
            continue
        records.append(item)
        if len(records) >= chunk_size:
            yield records
            records = []
    if records:  # Yield any remaining records
        yield records
