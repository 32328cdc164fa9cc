"""Parser for .consolekeep configuration files (simple line-based format)."""

from pathlib import Path
import re

from .models import KeepConfig


class KeepParseError(Exception):
    """Error parsing .consolekeep file."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number:
            super().__init__(f"Line {line_number}: {message}")
        else:
            super().__init__(message)


def parse_keep_file(path: Path) -> KeepConfig:
    """Parse a .consolekeep file from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        KeepParseError: If the file contains invalid content.
    """
    content = path.read_text(encoding="utf-8")
    return parse_keep_content(content)


def parse_keep_content(content: str) -> KeepConfig:
    """Parse .consolekeep content from a string.

    Format:
        - One rule per line: ERROR:regex or IMPORTANT:regex
        - Lines starting with # are comments
        - Empty lines and whitespace-only lines are ignored

    Args:
        content: The raw content of a .consolekeep file.

    Returns:
        Parsed KeepConfig.

    Raises:
        KeepParseError: If the content is invalid.
    """
    config = KeepConfig()

    for line_number, line in enumerate(content.splitlines(), start=1):
        line = line.strip()

        if not line or line.startswith("#"):
            continue

        kind, sep, value = line.partition(":")
        kind = kind.strip().upper()
        value = value.strip()

        if not sep or kind not in ("ERROR", "IMPORTANT"):
            raise KeepParseError(
                f"Invalid rule '{line}' - expected ERROR:regex or IMPORTANT:regex",
                line_number=line_number,
            )

        if not value:
            raise KeepParseError(f"Empty pattern for {kind}", line_number=line_number)

        try:
            pattern = re.compile(value)
        except re.error as e:
            raise KeepParseError(
                f"Invalid regex pattern: {e}", line_number=line_number
            ) from e

        if kind == "ERROR":
            config.errors.append(pattern)
        else:
            config.important.append(pattern)

    return config


# --- Sample file generation ---

SAMPLE_CONSOLEKEEP = """\
# .consolekeep - Lines that are always shown, even if a noise rule matches
#
# ERROR:regex       - Treated as an error (shown at every filter level)
# IMPORTANT:regex   - Shown at the 'important' and 'filtered' levels
#
# Lines starting with # are comments.
# Empty lines are ignored.

ERROR:^ERROR\\[
ERROR:Exception thrown
ERROR:java\\.lang\\.\\w+Exception

IMPORTANT:SERVER STARTED
IMPORTANT:fully-connected
IMPORTANT:connection-lost
IMPORTANT:RCON:
"""


def generate_sample_keep_file(path: Path) -> bool:
    """Generate a sample .consolekeep file.

    Returns:
        True if file was created, False if it already exists.
    """
    if path.exists():
        return False

    path.write_text(SAMPLE_CONSOLEKEEP, encoding="utf-8")
    return True
