"""Export classified records as plain text or JSON lines."""

import json
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, TextIO

from .models import ClassifiedRecord, PushRecord


class ExportFormat(Enum):
    TXT = "txt"
    JSON = "json"


@dataclass
class ExportTarget:
    """Target for exported records.

    Attributes:
        path: Output path - "stdout", "stderr", or file path
    """
    path: str

    def is_stdout(self) -> bool:
        return self.path == "stdout"

    def is_stderr(self) -> bool:
        return self.path == "stderr"

    def is_file(self) -> bool:
        return not (self.is_stdout() or self.is_stderr())


def format_record(record: ClassifiedRecord | PushRecord, fmt: ExportFormat) -> str:
    """Render a record as one output line (without newline)."""
    if fmt == ExportFormat.JSON:
        return json.dumps(record.to_dict(), ensure_ascii=False)
    if isinstance(record, PushRecord):
        return (
            f"{record.timestamp.isoformat()} [{record.severity.value}] "
            f"[{record.source}] {record.message}"
        )
    return record.raw


class RecordExporter:
    """Writes records to a target with automatic file handle lifecycle.

    Usage:
        with RecordExporter(ExportTarget("logs.jsonl"), ExportFormat.JSON) as out:
            out.write_all(stream.visible())
    """

    def __init__(self, target: ExportTarget, fmt: ExportFormat = ExportFormat.TXT):
        self.target = target
        self.format = fmt
        self.written = 0
        self._stream: TextIO | None = None
        self._opened_file: TextIO | None = None

    def __enter__(self) -> "RecordExporter":
        if self.target.is_stdout():
            self._stream = sys.stdout
        elif self.target.is_stderr():
            self._stream = sys.stderr
        else:
            self._opened_file = open(Path(self.target.path), "w", encoding="utf-8")
            self._stream = self._opened_file
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._opened_file is not None:
            self._opened_file.close()
            self._opened_file = None
        self._stream = None
        return False

    def write(self, record: ClassifiedRecord | PushRecord) -> None:
        if self._stream is None:
            raise RuntimeError("RecordExporter used outside of its context")
        self._stream.write(format_record(record, self.format))
        self._stream.write("\n")
        self.written += 1

    def write_all(self, records: Iterable[ClassifiedRecord | PushRecord]) -> int:
        """Write every record and flush; returns the number written."""
        count = 0
        for record in records:
            self.write(record)
            count += 1
        if self._stream is not None:
            self._stream.flush()
        return count
