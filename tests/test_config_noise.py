"""Tests for .consolenoise config parsing."""

import pytest
from pathlib import Path
import tempfile

from consoletail.config_noise import (
    parse_noise_content,
    parse_noise_file,
    parse_noise_line,
    generate_sample_noise_file,
    NoiseParseError,
)
from consoletail.models import (
    ClassifiedRecord,
    NoiseConfig,
    NoiseRuleCategory,
    NoiseRuleSeverity,
    NoiseRuleCategorySeverity,
    NoiseRulePattern,
    NoiseRuleLinePattern,
    Severity,
)


class TestParseNoiseLine:
    """Tests for parse_noise_line function."""

    def test_empty_line(self):
        """Empty lines should return None."""
        assert parse_noise_line("", 1) is None
        assert parse_noise_line("   ", 1) is None
        assert parse_noise_line("\t", 1) is None

    def test_comment_line(self):
        """Comment lines should return None."""
        assert parse_noise_line("# This is a comment", 1) is None
        assert parse_noise_line("  # Indented comment", 1) is None

    def test_category_rule(self):
        """CATEGORY:value should parse to NoiseRuleCategory."""
        rule = parse_noise_line("CATEGORY:Zombie", 1)
        assert isinstance(rule, NoiseRuleCategory)
        assert rule.category == "Zombie"

    def test_category_rule_with_whitespace(self):
        rule = parse_noise_line("  CATEGORY:Zombie  ", 1)
        assert isinstance(rule, NoiseRuleCategory)
        assert rule.category == "Zombie"

    def test_category_rule_case_insensitive_prefix(self):
        """Rule type prefix should be case insensitive."""
        rule = parse_noise_line("category:Zombie", 1)
        assert isinstance(rule, NoiseRuleCategory)
        assert rule.category == "Zombie"

    def test_severity_rule(self):
        """SEVERITY:value should parse to NoiseRuleSeverity."""
        for value, severity in [
            ("LOG", Severity.LOG),
            ("WARN", Severity.WARN),
            ("ERROR", Severity.ERROR),
            ("DEBUG", Severity.DEBUG),
            ("INFO", Severity.INFO),
            ("UNKNOWN", Severity.UNKNOWN),
        ]:
            rule = parse_noise_line(f"SEVERITY:{value}", 1)
            assert isinstance(rule, NoiseRuleSeverity)
            assert rule.severity == severity

    def test_severity_rule_lowercase(self):
        rule = parse_noise_line("SEVERITY:debug", 1)
        assert isinstance(rule, NoiseRuleSeverity)
        assert rule.severity == Severity.DEBUG

    def test_category_severity_rule(self):
        """CATEGORYSEVERITY:Category:Severity should parse."""
        rule = parse_noise_line("CATEGORYSEVERITY:Multiplayer:LOG", 1)
        assert isinstance(rule, NoiseRuleCategorySeverity)
        assert rule.category == "Multiplayer"
        assert rule.severity == Severity.LOG

    def test_pattern_rule(self):
        rule = parse_noise_line("PATTERN:zombie.*stuck", 1)
        assert isinstance(rule, NoiseRulePattern)
        assert rule.pattern_str == "zombie.*stuck"

    def test_pattern_rule_with_colons(self):
        """PATTERN should preserve colons in regex."""
        rule = parse_noise_line("PATTERN:time: \\d+ms", 1)
        assert isinstance(rule, NoiseRulePattern)
        assert rule.pattern_str == "time: \\d+ms"

    def test_linepattern_rule(self):
        rule = parse_noise_line("LINEPATTERN:^LOG\\s*:\\s*General", 1)
        assert isinstance(rule, NoiseRuleLinePattern)
        assert rule.pattern_str == "^LOG\\s*:\\s*General"

    def test_invalid_rule_type(self):
        """Unknown rule types should raise NoiseParseError."""
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("UNKNOWN:value", 1)
        assert "Unknown rule type" in str(exc_info.value)
        assert exc_info.value.line_number == 1

    def test_missing_colon(self):
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("CATEGORYZombie", 3)
        assert "Invalid rule format" in str(exc_info.value)
        assert exc_info.value.line_number == 3
        assert exc_info.value.line_content == "CATEGORYZombie"

    def test_empty_value(self):
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("CATEGORY:", 1)
        assert "Empty value" in str(exc_info.value)

    def test_invalid_severity(self):
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("SEVERITY:LOUD", 1)
        assert "Unknown severity" in str(exc_info.value)

    def test_invalid_regex(self):
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("PATTERN:[invalid", 1)
        assert "Invalid regex" in str(exc_info.value)

    def test_category_severity_wrong_format(self):
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("CATEGORYSEVERITY:OnlyCategory", 1)
        assert "CATEGORYSEVERITY rule requires format" in str(exc_info.value)

    def test_category_severity_missing_category(self):
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_line("CATEGORYSEVERITY: :LOG", 1)
        assert "requires a category" in str(exc_info.value)


class TestParseNoiseContent:
    """Tests for parse_noise_content function."""

    def test_empty_content(self):
        config = parse_noise_content("")
        assert len(config.rules) == 0

    def test_only_comments(self):
        content = """
        # Comment 1
        # Comment 2
        """
        config = parse_noise_content(content)
        assert len(config.rules) == 0

    def test_multiple_rules(self):
        content = """
        CATEGORY:Zombie
        SEVERITY:DEBUG
        PATTERN:test
        LINEPATTERN:^---
        """
        config = parse_noise_content(content)
        assert len(config.rules) == 4
        assert isinstance(config.rules[0], NoiseRuleCategory)
        assert isinstance(config.rules[1], NoiseRuleSeverity)
        assert isinstance(config.rules[2], NoiseRulePattern)
        assert isinstance(config.rules[3], NoiseRuleLinePattern)

    def test_error_reports_line_number(self):
        content = "CATEGORY:Zombie\n\nBOGUS:thing\n"
        with pytest.raises(NoiseParseError) as exc_info:
            parse_noise_content(content)
        assert exc_info.value.line_number == 3


class TestNoiseRules:
    """Tests for rule matching against classified records."""

    def test_pattern_matches_message_only(self):
        rule = NoiseRulePattern("^hello")
        record = ClassifiedRecord(Severity.LOG, "General", "hello", "LOG : General f:0> hello")
        assert rule.matches(record)

        line_rule = NoiseRulePattern("^LOG")
        assert not line_rule.matches(record)

    def test_linepattern_matches_raw(self):
        rule = NoiseRuleLinePattern("^LOG")
        record = ClassifiedRecord(Severity.LOG, "General", "hello", "LOG : General f:0> hello")
        assert rule.matches(record)

    def test_category_severity_needs_both(self):
        rule = NoiseRuleCategorySeverity("Zombie", Severity.LOG)
        assert rule.matches(ClassifiedRecord(Severity.LOG, "Zombie", "x", "x"))
        assert not rule.matches(ClassifiedRecord(Severity.WARN, "Zombie", "x", "x"))
        assert not rule.matches(ClassifiedRecord(Severity.LOG, "General", "x", "x"))

    def test_defaults_cover_known_noise(self):
        config = NoiseConfig.defaults()
        record = ClassifiedRecord(raw="LOG  : General f:0> moveZombie: There are no zombies")
        assert any(rule.matches(record) for rule in config.rules)

    def test_extend_returns_self(self):
        config = NoiseConfig()
        other = NoiseConfig(rules=[NoiseRuleCategory("Zombie")])
        assert config.extend(other) is config
        assert len(config.rules) == 1


class TestParseNoiseFile:
    """Tests for parse_noise_file function."""

    def test_parse_file(self):
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".consolenoise", delete=False
        ) as f:
            f.write("CATEGORY:Zombie\nSEVERITY:DEBUG\n")
            f.flush()

            config = parse_noise_file(Path(f.name))
            assert len(config.rules) == 2

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            parse_noise_file(Path("/nonexistent/.consolenoise"))


class TestGenerateSampleNoiseFile:
    """Tests for generate_sample_noise_file function."""

    def test_creates_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".consolenoise"
            result = generate_sample_noise_file(path)
            assert result is True
            assert path.exists()

            # Should be parseable
            config = parse_noise_file(path)
            assert len(config.rules) > 0

    def test_skips_existing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".consolenoise"
            path.write_text("CATEGORY:Existing")

            result = generate_sample_noise_file(path)
            assert result is False
            assert path.read_text() == "CATEGORY:Existing"
