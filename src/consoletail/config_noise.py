"""Parser for .consolenoise configuration files."""

from pathlib import Path
import re

from .models import (
    NoiseConfig,
    NoiseRule,
    NoiseRuleCategory,
    NoiseRuleSeverity,
    NoiseRuleCategorySeverity,
    NoiseRulePattern,
    NoiseRuleLinePattern,
    Severity,
)


class NoiseParseError(Exception):
    """Error parsing .consolenoise file."""

    def __init__(self, message: str, line_number: int, line_content: str):
        self.line_number = line_number
        self.line_content = line_content
        super().__init__(f"Line {line_number}: {message}\n  Content: {line_content!r}")


def parse_noise_file(path: Path) -> NoiseConfig:
    """Parse a .consolenoise file from disk.

    Args:
        path: Path to the .consolenoise file.

    Returns:
        Parsed NoiseConfig with all rules.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        NoiseParseError: If the file contains invalid syntax.
    """
    content = path.read_text(encoding="utf-8")
    return parse_noise_content(content)


def parse_noise_content(content: str) -> NoiseConfig:
    """Parse .consolenoise content from a string.

    Raises:
        NoiseParseError: If the content contains invalid syntax.
    """
    config = NoiseConfig()

    for line_number, line in enumerate(content.splitlines(), start=1):
        rule = parse_noise_line(line, line_number)
        if rule is not None:
            config.add_rule(rule)

    return config


def parse_noise_line(line: str, line_number: int) -> NoiseRule | None:
    """Parse a single line from a .consolenoise file.

    Args:
        line: The line content.
        line_number: Line number for error reporting.

    Returns:
        A NoiseRule if the line contains a rule, None if comment/blank.

    Raises:
        NoiseParseError: If the line contains invalid syntax.
    """
    line = line.strip()

    if not line or line.startswith("#"):
        return None

    if ":" not in line:
        raise NoiseParseError(
            "Invalid rule format. Expected TYPE:value",
            line_number,
            line,
        )

    # Regex values may contain colons, so split on the first one only
    rule_type, _, value = line.partition(":")
    rule_type = rule_type.strip().upper()
    value = value.strip()

    if not value:
        raise NoiseParseError(
            f"Empty value for rule type {rule_type}",
            line_number,
            line,
        )

    match rule_type:
        case "CATEGORY":
            return NoiseRuleCategory(category=value)
        case "SEVERITY":
            return NoiseRuleSeverity(severity=_parse_severity(value, line_number, line))
        case "CATEGORYSEVERITY":
            return _parse_category_severity_rule(value, line_number, line)
        case "PATTERN":
            return NoiseRulePattern(pattern_str=_validate_regex(value, line_number, line))
        case "LINEPATTERN":
            return NoiseRuleLinePattern(pattern_str=_validate_regex(value, line_number, line))
        case _:
            raise NoiseParseError(
                f"Unknown rule type: {rule_type}. "
                "Expected CATEGORY, SEVERITY, CATEGORYSEVERITY, PATTERN, or LINEPATTERN",
                line_number,
                line,
            )


def _parse_severity(value: str, line_number: int, line: str) -> Severity:
    try:
        return Severity.from_str(value)
    except ValueError as e:
        raise NoiseParseError(str(e), line_number, line) from e


def _parse_category_severity_rule(
    value: str, line_number: int, line: str
) -> NoiseRuleCategorySeverity:
    """Parse a CATEGORYSEVERITY:Category:SEVERITY rule."""
    parts = value.split(":")
    if len(parts) != 2:
        raise NoiseParseError(
            "CATEGORYSEVERITY rule requires format CATEGORYSEVERITY:Category:Severity",
            line_number,
            line,
        )

    category = parts[0].strip()
    if not category:
        raise NoiseParseError(
            "CATEGORYSEVERITY rule requires a category", line_number, line
        )

    severity = _parse_severity(parts[1], line_number, line)
    return NoiseRuleCategorySeverity(category=category, severity=severity)


def _validate_regex(value: str, line_number: int, line: str) -> str:
    try:
        re.compile(value)
    except re.error as e:
        raise NoiseParseError(f"Invalid regex pattern: {e}", line_number, line) from e
    return value


# --- Sample file generation ---

SAMPLE_CONSOLENOISE = """\
# .consolenoise - Lines to hide from the console log view
#
# Supported rule types:
#   CATEGORY:Name                   - Hide structured lines with this category
#   SEVERITY:DEBUG                  - Hide lines with this severity
#                                     (LOG/WARN/ERROR/DEBUG/INFO/UNKNOWN)
#   CATEGORYSEVERITY:Name:DEBUG     - Hide lines with this category AND severity
#   PATTERN:regex                   - Hide lines whose message matches regex
#   LINEPATTERN:regex               - Hide lines whose raw text matches regex
#
# The built-in game-server noise patterns apply in addition to these rules.

# Debug chatter
SEVERITY:DEBUG

# Frequent multiplayer bookkeeping
CATEGORYSEVERITY:Multiplayer:LOG

# Zombie pathing spam
PATTERN:(?i)^zombie .* stuck

# Mod loader banner lines
LINEPATTERN:^\\s*-{5,}\\s*$
"""


def generate_sample_noise_file(path: Path) -> bool:
    """Generate a sample .consolenoise file.

    Returns:
        True if file was created, False if it already exists.
    """
    if path.exists():
        return False

    path.write_text(SAMPLE_CONSOLENOISE, encoding="utf-8")
    return True
