"""consoletail - Tail, classify and filter a game server console log."""

__version__ = "0.1.0"

from .classifier import classify, classify_lines, classify_text
from .log_capture import BufferingLogHandler
from .models import (
    ClassifiedRecord,
    FilterLevel,
    LogSource,
    PushRecord,
    Severity,
    StreamState,
    TailCursor,
)
from .noise_filter import NoiseFilter, create_default_filter
from .reader import ReadFailure, read_new_lines, read_snapshot
from .retention import RetentionBuffer
from .scheduler import PollScheduler
from .service import LogTailService, UnknownSourceError
from .stream import LogStream, PushStream

__all__ = [
    "__version__",
    "classify",
    "classify_lines",
    "classify_text",
    "ClassifiedRecord",
    "FilterLevel",
    "LogSource",
    "PushRecord",
    "Severity",
    "StreamState",
    "TailCursor",
    "NoiseFilter",
    "create_default_filter",
    "ReadFailure",
    "read_new_lines",
    "read_snapshot",
    "RetentionBuffer",
    "PollScheduler",
    "LogTailService",
    "UnknownSourceError",
    "LogStream",
    "PushStream",
    "BufferingLogHandler",
]
