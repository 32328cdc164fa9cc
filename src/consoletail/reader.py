"""
Incremental reading of a growing, externally written log file.

The reader never mutates a cursor: every call returns a new TailCursor,
so a failed read leaves the caller's cursor untouched and the next
attempt retries from the same offset.

Design Decisions:
    - Polling with stat + seek/read, opened in binary mode so offsets are
      comparable to st_size
    - The stat is a lower bound: reads ask for "up to the observed size"
      and accept fewer bytes
    - Partial trailing lines are carried in the cursor until their
      terminator arrives
    - Rotation is detected by the file shrinking below the cursor, or by
      an inode change when the cursor knows the previous inode
"""

import logging
from pathlib import Path
from typing import BinaryIO

from .models import LogSource, ReadResult, Snapshot, TailCursor

logger = logging.getLogger(__name__)

# Initial loads never read more than this many bytes from the end of the file
DEFAULT_SNAPSHOT_BYTES = 1024 * 1024
INITIAL_LOAD_LINES = 1000


class ReadFailure(OSError):
    """Transient I/O failure while reading an existing source."""

    def __init__(self, source_id: str, cause: OSError):
        self.source_id = source_id
        self.cause = cause
        super().__init__(f"Failed to read {source_id}: {cause}")


def _open_binary(path: Path) -> BinaryIO:
    return path.open("rb")


def _read_range(source: LogSource, start: int, end: int) -> bytes:
    """Read bytes ``[start, end)``, accepting a short read."""
    if end <= start:
        return b""
    try:
        with _open_binary(source.path) as f:
            f.seek(start)
            return f.read(end - start)
    except OSError as e:
        raise ReadFailure(source.source_id, e) from e


def _refresh(source: LogSource) -> LogSource:
    try:
        return source.refresh()
    except OSError as e:
        raise ReadFailure(source.source_id, e) from e


def split_lines(data: bytes, skip_blank: bool = True) -> tuple[list[str], bytes]:
    """Split bytes into complete lines and a trailing remainder.

    Both ``\\n`` and ``\\r\\n`` terminate a line. The remainder holds the
    bytes after the last terminator (empty when data ends with one).

    Args:
        data: Raw bytes read from the file.
        skip_blank: Drop lines that are empty after stripping whitespace.

    Returns:
        (lines, remainder)
    """
    parts = data.split(b"\n")
    remainder = parts.pop()

    lines = []
    for part in parts:
        line = part.decode("utf-8", errors="replace").rstrip("\r")
        if skip_blank and not line.strip():
            continue
        lines.append(line)
    return lines, remainder


def _is_rotated(source: LogSource, cursor: TailCursor) -> bool:
    if source.size < cursor.offset:
        return True
    if cursor.inode is not None and source.inode is not None:
        return cursor.inode != source.inode
    return False


def read_new_lines(source: LogSource, cursor: TailCursor) -> ReadResult:
    """Read the complete lines appended since ``cursor``.

    Args:
        source: The log source; refreshed by this call.
        cursor: Position after the previous read.

    Returns:
        ReadResult with the new lines and the advanced cursor. When
        ``rotated`` is True the lines are the whole current file and must
        replace anything shown before.

    Raises:
        ReadFailure: On I/O errors other than the file being absent.
    """
    _refresh(source)

    if not source.exists:
        return ReadResult(lines=[], cursor=cursor, rotated=False, exists=False)

    size = source.size
    rotated = _is_rotated(source, cursor)

    if rotated:
        logger.info(
            "Log %s truncated/rotated (size %d < offset %d or new file)",
            source.source_id, size, cursor.offset,
        )
        start = 0
        pending = b""
    else:
        if size == cursor.offset:
            return ReadResult(lines=[], cursor=cursor, rotated=False)
        start = cursor.offset
        pending = cursor.pending

    data = _read_range(source, start, size)
    lines, remainder = split_lines(pending + data)

    new_cursor = TailCursor(
        source_id=source.source_id,
        offset=start + len(data),
        pending=remainder,
        inode=source.inode,
    )
    logger.debug(
        "Read %d bytes from %s (%d lines, %d pending)",
        len(data), source.source_id, len(lines), len(remainder),
    )
    return ReadResult(lines=lines, cursor=new_cursor, rotated=rotated)


def read_snapshot(
    source: LogSource,
    max_lines: int = INITIAL_LOAD_LINES,
    max_bytes: int = DEFAULT_SNAPSHOT_BYTES,
) -> Snapshot:
    """Load the tail end of a source for a first subscription.

    Ignores any prior cursor. Reads at most the last ``max_bytes`` bytes,
    drops the leading fragment when the read starts mid-file, and keeps
    the last ``max_lines`` complete lines. The returned cursor sits at
    the end of the file with any unterminated tail pending.

    Raises:
        ReadFailure: On I/O errors other than the file being absent.
    """
    _refresh(source)

    if not source.exists:
        return Snapshot(
            lines=[],
            cursor=TailCursor(source_id=source.source_id),
            exists=False,
        )

    size = source.size
    windowed = size > max_bytes
    # The byte before the window tells whether it starts on a line boundary
    start = size - max_bytes - 1 if windowed else 0
    data = _read_range(source, start, size)

    if windowed:
        # Drop the cut-off first line, up to and including its terminator
        cut = data.find(b"\n")
        head = data[cut + 1:] if cut >= 0 else b""
    else:
        head = data

    lines, remainder = split_lines(head)
    lines = lines[-max_lines:] if max_lines > 0 else []

    cursor = TailCursor(
        source_id=source.source_id,
        offset=start + len(data),
        pending=remainder,
        inode=source.inode,
    )
    return Snapshot(lines=lines, cursor=cursor, exists=True, size=cursor.offset)
