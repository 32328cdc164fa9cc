"""Snapshot / incremental fetch / clear over a registry of log sources."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .models import LogSource, TailCursor
from .reader import ReadFailure, read_new_lines, read_snapshot

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_LINES = 500
MAX_SNAPSHOT_LINES = 2000


class UnknownSourceError(KeyError):
    """No log source is registered under the requested id."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(source_id)

    def __str__(self) -> str:
        return f"Unknown log source: {self.source_id}"


@dataclass
class SnapshotResponse:
    """Initial load of a source; ``size`` is the offset to poll from."""
    lines: list[str]
    size: int
    path: str
    exists: bool


@dataclass
class FetchResponse:
    """Lines appended since a known offset.

    ``current_size`` is the offset of the end of the last complete line;
    callers store it unconditionally as their next known offset.
    """
    new_lines: list[str] = field(default_factory=list)
    rotated: bool = False
    current_size: int = 0
    exists: bool = True


class LogTailService:
    """Serves the tail of named log sources.

    The service keeps no per-client state: clients hold their own offset
    and pass it back on every fetch. Offsets handed out always fall on a
    line boundary, so a partially written last line is read again (and
    emitted once complete) by the following fetch.

    Usage:
        service = LogTailService({"console": Path("server-console.txt")})
        snap = service.snapshot("console", max_lines=1000)
        offset = snap.size
        while True:
            resp = service.fetch("console", offset)
            offset = resp.current_size
    """

    def __init__(self, sources: Mapping[str, Path | str]):
        self._sources = {
            source_id: LogSource(source_id=source_id, path=Path(path))
            for source_id, path in sources.items()
        }

    @property
    def source_ids(self) -> list[str]:
        return list(self._sources)

    def source(self, source_id: str) -> LogSource:
        try:
            return self._sources[source_id]
        except KeyError:
            raise UnknownSourceError(source_id) from None

    def snapshot(self, source_id: str, max_lines: int = DEFAULT_SNAPSHOT_LINES) -> SnapshotResponse:
        """Return the last ``max_lines`` lines (capped at MAX_SNAPSHOT_LINES).

        Raises:
            UnknownSourceError: If the id is not registered.
            ReadFailure: On I/O errors other than a missing file.
        """
        source = self.source(source_id)
        max_lines = min(max(max_lines, 0), MAX_SNAPSHOT_LINES)
        snap = read_snapshot(source, max_lines=max_lines)
        return SnapshotResponse(
            lines=snap.lines,
            size=snap.cursor.committed,
            path=str(source.path),
            exists=snap.exists,
        )

    def fetch(self, source_id: str, known_offset: int) -> FetchResponse:
        """Return the complete lines written after ``known_offset``.

        Raises:
            UnknownSourceError: If the id is not registered.
            ReadFailure: On I/O errors other than a missing file.
        """
        source = self.source(source_id)
        cursor = TailCursor(source_id=source_id, offset=max(known_offset, 0))
        result = read_new_lines(source, cursor)

        if not result.exists:
            return FetchResponse(current_size=cursor.offset, exists=False)

        return FetchResponse(
            new_lines=result.lines,
            rotated=result.rotated,
            current_size=result.cursor.committed,
        )

    def clear(self, source_id: str) -> bool:
        """Truncate the source file.

        Returns:
            True if a file was truncated, False if it did not exist.

        Raises:
            UnknownSourceError: If the id is not registered.
            ReadFailure: If the file exists but cannot be truncated.
        """
        source = self.source(source_id)
        try:
            if not source.refresh().exists:
                return False
            with source.path.open("wb"):
                pass
            source.refresh()
        except OSError as e:
            raise ReadFailure(source_id, e) from e
        logger.info("Log %s cleared", source_id)
        return True
