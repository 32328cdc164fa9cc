"""Data models for consoletail."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Pattern
import os
import re


class Severity(Enum):
    """Severity tags assigned to classified console lines."""
    LOG = "LOG"
    WARN = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"
    INFO = "INFO"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_str(cls, value: str) -> "Severity":
        """Parse a severity from a string."""
        value = value.upper().strip()
        for severity in cls:
            if severity.value == value:
                return severity
        raise ValueError(f"Unknown severity: {value}")


@dataclass(frozen=True)
class ClassifiedRecord:
    """A classified console log line.

    Attributes:
        severity: Severity tag (UNKNOWN when nothing matched).
        category: Category word from structured lines, empty otherwise.
        message: The message body.
        raw: The original line, verbatim.
    """
    severity: Severity = Severity.UNKNOWN
    category: str = ""
    message: str = ""
    raw: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "raw": self.raw,
        }


@dataclass(frozen=True)
class PushRecord:
    """An already-classified record pushed by an in-process producer."""
    severity: Severity
    message: str
    timestamp: datetime
    source: str = "server"

    def to_dict(self) -> dict[str, str]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }


# --- Tailing ---

@dataclass
class LogSource:
    """An externally written log file.

    Refreshed by a stat on every read; ``exists`` is False while the
    file is missing, which is a state and not an error.
    """
    source_id: str
    path: Path
    size: int = 0
    exists: bool = False
    inode: int | None = None

    def refresh(self) -> "LogSource":
        """Stat the file and update size, existence and inode.

        Raises:
            OSError: For any stat failure other than a missing file.
        """
        try:
            info = os.stat(self.path)
        except FileNotFoundError:
            self.size = 0
            self.exists = False
            self.inode = None
            return self
        self.size = info.st_size
        self.exists = True
        self.inode = info.st_ino or None
        return self


@dataclass(frozen=True)
class TailCursor:
    """Read position in a log source.

    Attributes:
        source_id: Identifier of the source this cursor belongs to.
        offset: Number of bytes consumed from the file.
        pending: Bytes of a trailing line that has no terminator yet.
        inode: File identity seen at the last read (None if unknown).
    """
    source_id: str
    offset: int = 0
    pending: bytes = b""
    inode: int | None = None

    @property
    def committed(self) -> int:
        """Offset just past the last complete line."""
        return self.offset - len(self.pending)


@dataclass
class ReadResult:
    """Outcome of one incremental read."""
    lines: list[str]
    cursor: TailCursor
    rotated: bool = False
    exists: bool = True


@dataclass
class Snapshot:
    """Outcome of an initial bounded load."""
    lines: list[str]
    cursor: TailCursor
    exists: bool = True
    size: int = 0


@dataclass
class StreamState:
    """Per-subscription stream state.

    ``filtered`` is a view flag only; it never discards stored records.
    """
    paused: bool = False
    last_known_offset: int = 0
    filtered: bool = True


# --- Noise Rule Types ---

class NoiseRuleType(Enum):
    """Types of noise rules supported in .consolenoise."""
    CATEGORY = "CATEGORY"
    SEVERITY = "SEVERITY"
    CATEGORYSEVERITY = "CATEGORYSEVERITY"
    PATTERN = "PATTERN"
    LINEPATTERN = "LINEPATTERN"


@dataclass(frozen=True)
class NoiseRuleCategory:
    """Noise rule: match by category word."""
    category: str

    def matches(self, record: ClassifiedRecord) -> bool:
        """Check if this rule matches the record."""
        return record.category == self.category


@dataclass(frozen=True)
class NoiseRuleSeverity:
    """Noise rule: match by severity."""
    severity: Severity

    def matches(self, record: ClassifiedRecord) -> bool:
        """Check if this rule matches the record."""
        return record.severity == self.severity


@dataclass(frozen=True)
class NoiseRuleCategorySeverity:
    """Noise rule: match by category AND severity combination."""
    category: str
    severity: Severity

    def matches(self, record: ClassifiedRecord) -> bool:
        """Check if this rule matches the record."""
        return record.category == self.category and record.severity == self.severity


@dataclass
class NoiseRulePattern:
    """Noise rule: match by regex pattern on the message."""
    pattern_str: str
    _compiled: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._compiled = re.compile(self.pattern_str)

    def matches(self, record: ClassifiedRecord) -> bool:
        """Check if this rule matches the record."""
        return bool(self._compiled.search(record.message))


@dataclass
class NoiseRuleLinePattern:
    """Noise rule: match by regex pattern on the full raw line."""
    pattern_str: str
    _compiled: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._compiled = re.compile(self.pattern_str)

    def matches(self, record: ClassifiedRecord) -> bool:
        """Check if this rule matches the record."""
        return bool(self._compiled.search(record.raw))


NoiseRule = (
    NoiseRuleCategory
    | NoiseRuleSeverity
    | NoiseRuleCategorySeverity
    | NoiseRulePattern
    | NoiseRuleLinePattern
)


# Known repetitive game-server console lines.
DEFAULT_NOISE_PATTERNS = [
    r"(?i)moveZombie: There are no zombies",
    r"(?i)ItemPickInfo -> cannot get ID for container",
    r"(?i)IsoThumpable not found on square",
    r"(?i)SpriteConfig\.initObjectInfo.*Invalid SpriteConfig",
    r"(?i)MOWoodenWalFrame\.lua: replacing isoObject",
    r"(?i)OreVein\{startPoint",
    r"(?i)SkeletonBone not resolved for bone",
    r"(?i)action was null, object: null",
    r"(?i)Could not find item type for",
    r"(?i)Canceled loading wrong transition",
    r"IsoSpriteManager\.AddSprite > duplicate texture",
    r"The packet PlayerHitZombie is not consistent",
    r"XuiSkin\$EntityUiStyle\.Load > Could not find icon:",
    r"XuiSkin\$EntityUiStyle\.LoadComponentInfo> Could not find icon:",
    r"LuaManager\.RunLua > recursive require\(\)",
    r"The AnimalPacket class doesn't have PacketSetting attributes",
    r"The AnimalEventPacket class doesn't have PacketSetting attributes",
]


@dataclass
class NoiseConfig:
    """Parsed .consolenoise configuration."""
    rules: list[NoiseRule] = field(default_factory=list)

    def add_rule(self, rule: NoiseRule) -> None:
        """Add a noise rule."""
        self.rules.append(rule)

    def extend(self, other: "NoiseConfig") -> "NoiseConfig":
        """Append the rules of another config, returning self."""
        self.rules.extend(other.rules)
        return self

    @classmethod
    def defaults(cls) -> "NoiseConfig":
        """Built-in rules for known noisy game-server lines."""
        return cls(rules=[NoiseRuleLinePattern(p) for p in DEFAULT_NOISE_PATTERNS])


# --- Keep Configuration ---

DEFAULT_ERROR_PATTERNS = [
    r"^ERROR\[",
    r"Exception thrown",
    r"Stack trace:",
    r"java\.lang\.\w+Exception",
    r"KahluaThread\.flushErrorMessage",
]

DEFAULT_IMPORTANT_PATTERNS = [
    r"^\[PanelBridge\]",
    r"SERVER STARTED",
    r"fully-connected",
    r"player-connect",
    r"connection-lost",
    r"disconnect",
    r"Steam client .* is initiating",
    r"RCON:",
    r"Recipe AutoLearned",
    r"Reduce Head Condition",
    r"ISBuildIsoEntity",
]


@dataclass
class KeepConfig:
    """Parsed .consolekeep configuration.

    Lines matching an error or important pattern are always shown, even
    when a noise rule also matches them.
    """
    errors: list[Pattern[str]] = field(default_factory=list)
    important: list[Pattern[str]] = field(default_factory=list)

    def is_error(self, line: str) -> bool:
        return any(p.search(line) for p in self.errors)

    def is_important(self, line: str) -> bool:
        return any(p.search(line) for p in self.important)

    @classmethod
    def defaults(cls) -> "KeepConfig":
        """Built-in error and important patterns."""
        return cls(
            errors=[re.compile(p) for p in DEFAULT_ERROR_PATTERNS],
            important=[re.compile(p) for p in DEFAULT_IMPORTANT_PATTERNS],
        )


# --- Filtering ---

class FilterLevel(Enum):
    """How much of a stream the view shows.

    ALL: every record
    FILTERED: everything except noise (errors/important always kept)
    IMPORTANT: errors and important lines only
    ERRORS: errors only
    """
    ALL = "all"
    FILTERED = "filtered"
    IMPORTANT = "important"
    ERRORS = "errors"


@dataclass
class FilterResult:
    """Result of evaluating a record against the noise filter."""
    record: ClassifiedRecord
    visible: bool
    noisy: bool = False
    matched_rule: NoiseRule | None = None
