"""Paginated token search returning per-thread evidence windows."""

from datetime import timedelta
from typing import Iterator, Sequence

from .errors import InvalidQuery
from .models import LogLine

DEFAULT_WINDOW_SECONDS = 60
DEFAULT_MIN_TOKEN_LENGTH = 4


class PagedTokenSearch:
    """
    Finds every distinct (thread, timestamp) hit for a token and expands
    each hit to the surrounding lines of the same thread.

    Pagination applies to the distinct hits, not to output lines.
    """

    def __init__(
        self,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
    ):
        self.window = timedelta(seconds=window_seconds)
        self.min_token_length = min_token_length

    def search(
        self,
        lines: Sequence[str],
        token: str,
        page: int = 0,
        size: int = 10,
    ) -> list[str]:
        """
        Return the concatenated evidence windows for one page of hits.

        Args:
            lines: Every line of the source file, in order
            token: Free-text search token
            page: 0-based page number
            size: Hits per page

        Returns:
            Lines ordered by hit, then by file position; empty past the
            last page

        Raises:
            InvalidQuery: for a short token or a negative page / non-positive size
        """
        result = []
        for expansion in self.iter_expansions(lines, token, page, size):
            result.extend(expansion)
        return result

    def iter_expansions(
        self,
        lines: Sequence[str],
        token: str,
        page: int = 0,
        size: int = 10,
    ) -> Iterator[list[str]]:
        """
        Yield one evidence window per hit of the requested page.

        Parameters are validated eagerly; windows are computed lazily so a
        streaming consumer can stop early.
        """
        self._validate(token, page, size)
        parsed = [LogLine(text=line, index=i) for i, line in enumerate(lines)]
        hits = self.distinct_hits(parsed, token)[page * size:(page + 1) * size]
        return (self._expand(parsed, thread_id, ts) for thread_id, ts in hits)

    def distinct_hits(self, parsed: Sequence[LogLine], token: str) -> list[tuple]:
        """Distinct (thread id, timestamp) pairs of matching lines, in discovery order."""
        seen: dict = {}
        for line in parsed:
            if token not in line.text:
                continue
            if line.thread_id is None or line.timestamp is None:
                continue
            seen.setdefault((line.thread_id, line.timestamp), None)
        return list(seen)

    def _expand(self, parsed: Sequence[LogLine], thread_id: str, ts) -> list[str]:
        low, high = ts - self.window, ts + self.window
        return [
            line.text for line in parsed
            if line.thread_id == thread_id
            and line.timestamp is not None
            and low <= line.timestamp <= high
        ]

    def _validate(self, token: str, page: int, size: int) -> None:
        if token is None or len(token) < self.min_token_length:
            raise InvalidQuery(
                f"Token must be at least {self.min_token_length} characters"
            )
        if page < 0:
            raise InvalidQuery("Page must be zero or greater")
        if size <= 0:
            raise InvalidQuery("Size must be greater than zero")
