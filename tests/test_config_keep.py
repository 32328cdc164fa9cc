"""Tests for .consolekeep config parsing (line-based format)."""

import pytest
from pathlib import Path
import tempfile

from consoletail.config_keep import (
    parse_keep_content,
    parse_keep_file,
    generate_sample_keep_file,
    KeepParseError,
)
from consoletail.models import KeepConfig


class TestParseKeepContent:
    """Tests for parse_keep_content function."""

    def test_empty_content(self):
        """Empty content should return config with no patterns."""
        config = parse_keep_content("")
        assert config.errors == []
        assert config.important == []

    def test_error_and_important(self):
        content = """
        ERROR:Exception thrown
        IMPORTANT:SERVER STARTED
        IMPORTANT:RCON:
        """
        config = parse_keep_content(content)
        assert [p.pattern for p in config.errors] == ["Exception thrown"]
        assert [p.pattern for p in config.important] == ["SERVER STARTED", "RCON:"]

    def test_kind_case_insensitive(self):
        config = parse_keep_content("error:boom\nimportant:hello")
        assert len(config.errors) == 1
        assert len(config.important) == 1

    def test_comments_and_blank_lines(self):
        content = """
        # Errors
        ERROR:boom

        # nothing else
        """
        config = parse_keep_content(content)
        assert len(config.errors) == 1
        assert config.important == []

    def test_invalid_kind(self):
        with pytest.raises(KeepParseError) as exc_info:
            parse_keep_content("\nWARN:something")
        assert exc_info.value.line_number == 2
        assert "Line 2" in str(exc_info.value)

    def test_missing_colon(self):
        with pytest.raises(KeepParseError):
            parse_keep_content("ERROR boom")

    def test_empty_pattern(self):
        with pytest.raises(KeepParseError) as exc_info:
            parse_keep_content("IMPORTANT:")
        assert "Empty pattern" in str(exc_info.value)

    def test_invalid_regex(self):
        with pytest.raises(KeepParseError) as exc_info:
            parse_keep_content("ERROR:[unclosed")
        assert "Invalid regex" in str(exc_info.value)


class TestKeepConfig:
    """Tests for KeepConfig matching."""

    def test_defaults_match_known_lines(self):
        config = KeepConfig.defaults()
        assert config.is_error("ERROR[12] something")
        assert config.is_error("Caused by java.lang.NullPointerException")
        assert config.is_important("[PanelBridge] ready")
        assert config.is_important("Player Bob fully-connected")
        assert not config.is_error("LOG  : General f:0> hello")
        assert not config.is_important("LOG  : General f:0> hello")

    def test_empty_config_matches_nothing(self):
        config = KeepConfig()
        assert not config.is_error("ERROR[1]")
        assert not config.is_important("SERVER STARTED")


class TestParseKeepFile:
    """Tests for parse_keep_file function."""

    def test_parse_file(self):
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".consolekeep", delete=False
        ) as f:
            f.write("ERROR:boom\nIMPORTANT:hello\n")
            f.flush()

            config = parse_keep_file(Path(f.name))
            assert len(config.errors) == 1
            assert len(config.important) == 1

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            parse_keep_file(Path("/nonexistent/.consolekeep"))


class TestGenerateSampleKeepFile:
    """Tests for generate_sample_keep_file function."""

    def test_creates_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".consolekeep"
            result = generate_sample_keep_file(path)
            assert result is True

            config = parse_keep_file(path)
            assert config.is_error("ERROR[3] boom")
            assert config.is_important("SERVER STARTED")

    def test_skips_existing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".consolekeep"
            path.write_text("ERROR:mine")

            result = generate_sample_keep_file(path)
            assert result is False
            assert path.read_text() == "ERROR:mine"
