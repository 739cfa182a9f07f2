"""Prefix parsing and time-window filtering for thread-tagged log lines.

Expected line shape::

    2025-01-01 10:00:00.000 [T12] [ERR] - <tail>

Continuation lines (stack frames, ``|- Key: Value`` details, payload
fragments) carry no prefix at all.
"""

import re
from datetime import datetime
from typing import Iterable, Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
TIMESTAMP_LENGTH = 23

TIMESTAMP_REGEX = re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}')

# Thread ids look like [T12] or [T-worker7]
THREAD_ID_PATTERN = re.compile(r'\[(T\d+|T-[A-Za-z0-9]+)\]')

LEVEL_PATTERN = re.compile(r'\[([A-Z]{3})\]')

# Standard prefix: timestamp, bracketed thread, bracketed level, dash
PREFIX_PATTERN = re.compile(
    r'^(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}) \[([^\]]+)\] \[([A-Z]{3})\] - ?'
)

# Stack-trace continuation rules, applied to the line with its prefix removed
CONTINUATION_PATTERNS = [
    re.compile(r'^\s*at\s+'),  # Java stack frame
    re.compile(r'^\s*Caused by: ', re.IGNORECASE),  # Chained cause
    re.compile(r'^\s*\.\.\.\s+\d+\s+more\b'),  # "... 12 more"
    re.compile(r'^\s{4,}\S'),  # Deep indentation
]


def parse_timestamp(line: str) -> Optional[datetime]:
    """Parse the fixed-width timestamp prefix, or return None."""
    if len(line) < TIMESTAMP_LENGTH:
        return None
    try:
        return datetime.strptime(line[:TIMESTAMP_LENGTH], TIMESTAMP_FORMAT)
    except ValueError:
        return None


def extract_timestamp_text(line: str) -> Optional[str]:
    """Return the raw timestamp prefix text, or None."""
    match = TIMESTAMP_REGEX.match(line)
    return match.group() if match else None


def extract_thread_id(line: str) -> Optional[str]:
    match = THREAD_ID_PATTERN.search(line)
    return match.group(1) if match else None


def extract_level(line: str) -> Optional[str]:
    match = PREFIX_PATTERN.match(line)
    if match:
        return match.group(3)
    match = LEVEL_PATTERN.search(line)
    return match.group(1) if match else None


def strip_prefix(line: str) -> str:
    """Remove the standard log prefix, leaving the tail."""
    return PREFIX_PATTERN.sub('', line, count=1)


def has_prefix(line: str) -> bool:
    return PREFIX_PATTERN.match(line) is not None


def has_thread(line: str, thread_id: str) -> bool:
    return f"[{thread_id}]" in line


def is_untagged(line: str) -> bool:
    """True for lines without any bracketed thread id."""
    return THREAD_ID_PATTERN.search(line) is None


def is_stack_continuation(line: str) -> bool:
    """Check whether a line continues a stack trace."""
    core = strip_prefix(line)
    return any(pattern.search(core) for pattern in CONTINUATION_PATTERNS)


def filter_by_window(
    lines: Iterable[str],
    start: datetime,
    end: datetime,
    keep_continuations: bool = False,
) -> list[str]:
    """
    Keep lines whose timestamp falls in ``[start, end)``.

    Lines that are too short or carry no parseable timestamp are dropped
    without error, unless ``keep_continuations`` is set: then they follow
    the fate of the closest timestamped line above them, which keeps stack
    frames and ``|- Key: Value`` details with their event.

    Args:
        lines: Raw log lines
        start: Inclusive lower bound
        end: Exclusive upper bound
        keep_continuations: Keep untimestamped lines of retained events

    Returns:
        Lines inside the window, in input order
    """
    kept = []
    inside = False
    for line in lines:
        ts = parse_timestamp(line)
        if ts is None:
            if keep_continuations and inside:
                kept.append(line)
            continue
        inside = start <= ts < end
        if inside:
            kept.append(line)
    return kept
