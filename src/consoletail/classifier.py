"""Classifier for game-server console log lines."""

import re
from typing import Iterable, Iterator

from .models import ClassifiedRecord, Severity


# Console line formats:
#
# 1. structured: "TYPE : Category    f:XXXXX, t:XXXXX, st:XXXXX> Source > Message"
#    Example: "ERROR: Zombie      f:100, t:200, st:1> something bad happened"
#
# 2. prefixed: "TYPE: message" or "TYPE message"
#    Example: "WARN: disk almost full"
#
# Anything else is kept as an UNKNOWN record with the trimmed text as message.

SEVERITY_KEYWORDS = ("LOG", "WARN", "ERROR", "DEBUG", "INFO")

# The greedy metadata group makes the message start after the last '>'
# that is still followed by text.
STRUCTURED_PATTERN = re.compile(
    r"^(?P<severity>LOG|WARN|ERROR|DEBUG|INFO)\s*:\s*"
    r"(?P<category>\w+)"
    r"(?P<meta>.*)>\s*"
    r"(?P<message>\S.*)$",
    re.IGNORECASE,
)

# Keywords must be whole words: "WARNING: x" and "LOGGING started" are not
# WARN or LOG lines and fall through to UNKNOWN.
PREFIX_PATTERNS = [
    (Severity.from_str(keyword), re.compile(rf"^{keyword}\b\s*:?\s*", re.IGNORECASE))
    for keyword in SEVERITY_KEYWORDS
]


def _structured_rule(trimmed: str, raw: str) -> ClassifiedRecord | None:
    match = STRUCTURED_PATTERN.match(trimmed)
    if not match:
        return None
    return ClassifiedRecord(
        severity=Severity.from_str(match.group("severity")),
        category=match.group("category"),
        message=match.group("message").strip(),
        raw=raw,
    )


def _prefix_rule(trimmed: str, raw: str) -> ClassifiedRecord | None:
    for severity, pattern in PREFIX_PATTERNS:
        match = pattern.match(trimmed)
        if match:
            return ClassifiedRecord(
                severity=severity,
                message=trimmed[match.end():],
                raw=raw,
            )
    return None


# Rules are tried in order; the structured rule wins because it also
# extracts a category.
RULES = [
    _structured_rule,
    _prefix_rule,
]


def classify(raw: str) -> ClassifiedRecord:
    """Classify a single console line.

    Never fails: lines that match no rule become UNKNOWN records with the
    trimmed text as message.

    Args:
        raw: A single line from the console log.

    Returns:
        A ClassifiedRecord; ``raw`` always holds the input verbatim.
    """
    trimmed = raw.strip()
    if not trimmed:
        return ClassifiedRecord(raw=raw)

    for rule in RULES:
        record = rule(trimmed, raw)
        if record is not None:
            return record

    return ClassifiedRecord(message=trimmed, raw=raw)


def classify_lines(lines: Iterable[str]) -> Iterator[ClassifiedRecord]:
    """Classify multiple lines.

    Args:
        lines: Iterable of console lines.

    Yields:
        ClassifiedRecord for each line.
    """
    for line in lines:
        yield classify(line)


def classify_text(text: str) -> list[ClassifiedRecord]:
    """Classify text containing multiple lines.

    Args:
        text: Multi-line console output.

    Returns:
        List of ClassifiedRecord objects.
    """
    return list(classify_lines(text.splitlines()))
