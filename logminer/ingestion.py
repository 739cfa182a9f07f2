"""Line sources: chunked file reading and the served log directory."""

import gzip
import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import IOUnavailable

logger = logging.getLogger(__name__)

# Chunk size for reading large files (64KB)
CHUNK_SIZE = 64 * 1024

LOG_EXTENSIONS = ('.log', '.txt', '.gz')


def read_log_file(file: BinaryIO, filename: str) -> Iterator[str]:
    """
    Read log lines from a binary stream.

    Plain and gzip-compressed files are supported; undecodable bytes are
    replaced rather than failing the read.

    Args:
        file: File-like object with binary content
        filename: Original filename (used to detect compression)

    Yields:
        Individual log lines without their line terminator
    """
    if filename.endswith('.gz'):
        with gzip.GzipFile(fileobj=file) as gz:
            yield from _iter_lines(gz)
    else:
        yield from _iter_lines(file)


def _iter_lines(stream: BinaryIO) -> Iterator[str]:
    text_stream = io.TextIOWrapper(stream, encoding='utf-8', errors='replace', newline='')
    buffer = ""

    try:
        while True:
            chunk = text_stream.read(CHUNK_SIZE)
            if not chunk:
                if buffer:
                    yield buffer.rstrip('\r')
                break

            buffer += chunk
            lines = buffer.split('\n')

            # Yield all complete lines, keep the last partial line in buffer
            for line in lines[:-1]:
                yield line.rstrip('\r')
            buffer = lines[-1]
    finally:
        # The caller owns the underlying stream
        text_stream.detach()


class LogFileStore:
    """Resolves file ids to log files inside one directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def list_files(self) -> list[str]:
        """Names of the log files available for querying."""
        if not self.directory.is_dir():
            logger.warning("Log directory %s does not exist", self.directory)
            return []
        return sorted(
            p.name for p in self.directory.iterdir()
            if p.is_file() and p.name.lower().endswith(LOG_EXTENSIONS)
        )

    def resolve(self, file_id: str) -> Path:
        """Map a file id to a path, refusing anything outside the directory."""
        if not file_id:
            raise IOUnavailable("File name is required")
        root = self.directory.resolve()
        path = (root / file_id).resolve()
        if path.parent != root:
            raise IOUnavailable(f"File is outside the log directory: {file_id}")
        return path

    def read_lines(self, file_id: str) -> list[str]:
        return read_path(self.resolve(file_id))


def read_path(path) -> list[str]:
    """
    Read a whole log file into memory.

    Raises:
        IOUnavailable: if the file is missing or unreadable
    """
    path = Path(path)
    if not path.is_file():
        raise IOUnavailable(f"Log file not found: {path.name}")
    try:
        with open(path, 'rb') as f:
            return list(read_log_file(f, path.name))
    except (OSError, EOFError) as e:
        raise IOUnavailable(f"Cannot read {path.name}: {e}") from e
