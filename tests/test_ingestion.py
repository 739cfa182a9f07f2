"""Tests for file reading and the log directory store."""

import gzip
import io

import pytest

from logminer.errors import IOUnavailable
from logminer.ingestion import LogFileStore, read_log_file, read_path


class TestReadLogFile:
    """Tests for read_log_file."""

    def test_plain_text(self):
        """Test line splitting without a trailing newline."""
        data = io.BytesIO(b"first\nsecond\nthird")
        assert list(read_log_file(data, "app.log")) == ["first", "second", "third"]

    def test_crlf_terminators(self):
        """Test that Windows line endings are stripped."""
        data = io.BytesIO(b"first\r\nsecond\r\n")
        assert list(read_log_file(data, "app.log")) == ["first", "second"]

    def test_gzip(self):
        """Test transparent decompression."""
        data = io.BytesIO(gzip.compress(b"one\ntwo\n"))
        assert list(read_log_file(data, "app.log.gz")) == ["one", "two"]

    def test_invalid_utf8_replaced(self):
        """Test that undecodable bytes do not fail the read."""
        data = io.BytesIO(b"ok\n\xff\xfe broken\n")
        lines = list(read_log_file(data, "app.log"))

        assert lines[0] == "ok"
        assert lines[1].endswith(" broken")

    def test_stream_left_open(self):
        """Test that the caller keeps ownership of the stream."""
        data = io.BytesIO(b"line\n")
        list(read_log_file(data, "app.log"))
        assert not data.closed


class TestLogFileStore:
    """Tests for LogFileStore."""

    def test_list_files(self, tmp_path):
        """Test extension filtering and ordering."""
        for name in ("b.log", "a.txt", "c.log.gz", "notes.md"):
            (tmp_path / name).write_text("x\n")
        (tmp_path / "archive.log").mkdir()

        assert LogFileStore(str(tmp_path)).list_files() == ["a.txt", "b.log", "c.log.gz"]

    def test_missing_directory(self, tmp_path):
        """Test that an absent directory lists nothing."""
        assert LogFileStore(str(tmp_path / "nope")).list_files() == []

    def test_read_lines(self, tmp_path):
        """Test reading a file by name."""
        (tmp_path / "app.log").write_text("a\nb\n")
        assert LogFileStore(str(tmp_path)).read_lines("app.log") == ["a", "b"]

    def test_path_traversal_rejected(self, tmp_path):
        """Test that names escaping the directory are refused."""
        store = LogFileStore(str(tmp_path / "logs"))
        with pytest.raises(IOUnavailable):
            store.resolve("../secret.log")
        with pytest.raises(IOUnavailable):
            store.resolve("")

    def test_missing_file(self, tmp_path):
        """Test IOUnavailable for an unknown file."""
        with pytest.raises(IOUnavailable):
            LogFileStore(str(tmp_path)).read_lines("missing.log")


class TestReadPath:
    """Tests for read_path."""

    def test_truncated_gzip(self, tmp_path):
        """Test that a corrupt archive maps to IOUnavailable."""
        path = tmp_path / "broken.log.gz"
        path.write_bytes(gzip.compress(b"one\ntwo\n" * 100)[:20])

        with pytest.raises(IOUnavailable):
            read_path(path)
