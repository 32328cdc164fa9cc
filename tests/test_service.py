"""Tests for the log tail service."""

import pytest

from consoletail.reader import ReadFailure
from consoletail.service import (
    MAX_SNAPSHOT_LINES,
    LogTailService,
    UnknownSourceError,
)


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "server-console.txt"


@pytest.fixture
def service(log_path):
    return LogTailService({"console": log_path})


class TestSources:
    """Tests for the source registry."""

    def test_source_ids(self, service):
        assert service.source_ids == ["console"]

    def test_unknown_source(self, service):
        with pytest.raises(UnknownSourceError) as exc_info:
            service.fetch("nope", 0)
        assert exc_info.value.source_id == "nope"
        assert str(exc_info.value) == "Unknown log source: nope"

    def test_unknown_source_is_key_error(self, service):
        with pytest.raises(KeyError):
            service.snapshot("nope")


class TestSnapshot:
    """Tests for snapshot."""

    def test_missing_file(self, service, log_path):
        snap = service.snapshot("console")
        assert snap.exists is False
        assert snap.lines == []
        assert snap.size == 0
        assert snap.path == str(log_path)

    def test_last_lines(self, service, log_path):
        log_path.write_text("".join(f"line {i}\n" for i in range(10)))
        snap = service.snapshot("console", max_lines=3)
        assert snap.lines == ["line 7", "line 8", "line 9"]
        assert snap.size == log_path.stat().st_size

    def test_max_lines_capped(self, service, log_path):
        log_path.write_text("".join(f"{i}\n" for i in range(MAX_SNAPSHOT_LINES + 100)))
        snap = service.snapshot("console", max_lines=10 ** 6)
        assert len(snap.lines) == MAX_SNAPSHOT_LINES
        assert snap.lines[-1] == str(MAX_SNAPSHOT_LINES + 99)

    def test_size_excludes_partial_line(self, service, log_path):
        log_path.write_bytes(b"one\ntw")
        snap = service.snapshot("console")
        assert snap.lines == ["one"]
        assert snap.size == 4


class TestFetch:
    """Tests for incremental fetch."""

    def test_new_lines_since_offset(self, service, log_path):
        log_path.write_text("one\n")
        snap = service.snapshot("console")
        with log_path.open("a") as f:
            f.write("two\nthree\n")

        resp = service.fetch("console", snap.size)
        assert resp.new_lines == ["two", "three"]
        assert resp.rotated is False
        assert resp.current_size == log_path.stat().st_size

    def test_no_change(self, service, log_path):
        log_path.write_text("one\n")
        resp = service.fetch("console", 4)
        assert resp.new_lines == []
        assert resp.current_size == 4

    def test_partial_line_refetched(self, service, log_path):
        log_path.write_bytes(b"one\ntw")
        first = service.fetch("console", 0)
        assert first.new_lines == ["one"]
        assert first.current_size == 4

        with log_path.open("ab") as f:
            f.write(b"o\n")
        second = service.fetch("console", first.current_size)
        assert second.new_lines == ["two"]
        assert second.current_size == 8

    def test_rotation(self, service, log_path):
        log_path.write_text("x" * 999 + "\n")
        log_path.write_text("y" * 199 + "\n")
        resp = service.fetch("console", 1000)
        assert resp.rotated is True
        assert resp.new_lines == ["y" * 199]
        assert resp.current_size == 200

    def test_missing_file_keeps_offset(self, service):
        resp = service.fetch("console", 123)
        assert resp.exists is False
        assert resp.new_lines == []
        assert resp.current_size == 123

    def test_negative_offset_treated_as_zero(self, service, log_path):
        log_path.write_text("one\n")
        assert service.fetch("console", -5).new_lines == ["one"]


class TestClear:
    """Tests for clear."""

    def test_truncates(self, service, log_path):
        log_path.write_text("one\ntwo\n")
        assert service.clear("console") is True
        assert log_path.read_bytes() == b""
        assert service.fetch("console", 0).new_lines == []

    def test_missing_file(self, service, log_path):
        assert service.clear("console") is False
        assert not log_path.exists()

    def test_failure_wrapped(self, tmp_path):
        # A directory in place of the log cannot be opened for writing
        directory = tmp_path / "dir"
        directory.mkdir()
        service = LogTailService({"console": directory})
        with pytest.raises(ReadFailure):
            service.clear("console")
