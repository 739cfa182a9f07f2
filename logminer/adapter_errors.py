"""Structured adapter-error extraction.

Adapters report business failures as a response header followed by
key/value detail lines::

    2025-01-01 10:00:00.000 [T7] [ERR] - RES: Pay
    |- Code: E010002
    |- Description: Payment rejected
    |- Reason: timeout

The record ends at the next prefixed line.
"""

import re
from enum import Enum
from typing import Iterable, Iterator, Optional

from .models import AdapterError
from .normalization import dedupe_by
from .parsing import PREFIX_PATTERN

RESPONSE_PATTERN = re.compile(r'^RES:\s*(\S+)')

DETAIL_PATTERN = re.compile(r'\|-\s*(Code|Description|Reason):\s*(.*)$', re.IGNORECASE)

DETAIL_FIELDS = {
    "code": "code",
    "description": "description",
    "reason": "reason",
}


class ParserState(Enum):
    """States of the adapter record scanner."""
    IDLE = "idle"
    IN_ADAPTER_RECORD = "in_adapter_record"


class AdapterErrorParser:
    """Builds AdapterError records from ``RES:`` error headers and their details."""

    def parse(self, lines: Iterable[str]) -> list[AdapterError]:
        return list(self.iter_errors(lines))

    def iter_errors(self, lines: Iterable[str]) -> Iterator[AdapterError]:
        """
        Scan lines and yield each adapter error as it closes.

        Args:
            lines: Raw log lines in file order

        Yields:
            AdapterError records in input order
        """
        state = ParserState.IDLE
        record: Optional[AdapterError] = None

        for line in lines:
            prefix = PREFIX_PATTERN.match(line)

            if prefix and prefix.group(3) == "ERR":
                tail = line[prefix.end():].strip()
                response = RESPONSE_PATTERN.match(tail)
                if response:
                    if record is not None:
                        yield record
                    record = AdapterError(
                        timestamp=prefix.group(1),
                        thread_id=prefix.group(2),
                        operation=response.group(1),
                    )
                    state = ParserState.IN_ADAPTER_RECORD
                    continue

            if state is not ParserState.IN_ADAPTER_RECORD:
                continue

            detail = DETAIL_PATTERN.search(line)
            if detail:
                field_name = DETAIL_FIELDS[detail.group(1).lower()]
                setattr(record, field_name, detail.group(2).strip())
                continue

            if prefix:
                yield record
                record = None
                state = ParserState.IDLE

        if record is not None:
            yield record


def dedupe_adapter_errors(errors: Iterable[AdapterError]) -> list[AdapterError]:
    """Collapse records by lowercased ``operation|code|reason``."""
    return dedupe_by(errors, lambda e: e.signature)
