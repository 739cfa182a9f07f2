"""Exception block detection over a flat line sequence."""

import re
from collections import deque
from enum import Enum
from typing import Iterable, Iterator

from .models import ExceptionBlock
from .parsing import is_stack_continuation

# A line opens (or, inside a block, extends) an exception occurrence
EXCEPTION_START_PATTERN = re.compile(r'(Exception|Error)[: ]', re.IGNORECASE)

ERR_MARKER = "[ERR]"


class DetectorState(Enum):
    """States of the block scanner."""
    IDLE = "idle"
    IN_BLOCK = "in_block"


def is_exception_start(line: str) -> bool:
    return EXCEPTION_START_PATTERN.search(line) is not None


class ExceptionBlockDetector:
    """
    Turns a line sequence into exception blocks.

    Stack traces delimit themselves by keyword and indentation, so a block
    ends at the first line that neither starts an exception nor continues
    a trace. The terminating line is not part of the block.

    Lookback context comes from a rolling buffer holding the last
    ``context_size`` lines (the current line included). A start line
    tagged ``[ERR]`` only pulls in the contiguous ``[ERR]`` run directly
    above it. Lines already emitted in an earlier block are never reused
    as context, so blocks partition the lines they cover.
    """

    def __init__(self, context_size: int = 6):
        """
        Initialize the detector.

        Args:
            context_size: Capacity of the rolling lookback buffer
        """
        self.context_size = max(0, context_size)

    def detect(self, lines: Iterable[str]) -> list[ExceptionBlock]:
        """Collect every block found in ``lines``."""
        return list(self.iter_blocks(lines))

    def iter_blocks(self, lines: Iterable[str]) -> Iterator[ExceptionBlock]:
        """
        Scan lines and yield blocks as they complete.

        All scan state is local, so one detector can serve concurrent
        callers.

        Args:
            lines: Raw log lines in file order

        Yields:
            ExceptionBlock objects in input order
        """
        state = DetectorState.IDLE
        buffer: deque = deque(maxlen=self.context_size)
        current: list[tuple[int, str]] = []
        consumed = -1

        for index, line in enumerate(lines):
            if self.context_size:
                buffer.append((index, line))

            if state is DetectorState.IN_BLOCK:
                if is_exception_start(line) or is_stack_continuation(line):
                    current.append((index, line))
                    continue

                consumed = current[-1][0]
                yield self._to_block(current)
                current = []
                state = DetectorState.IDLE
                continue

            if not is_exception_start(line):
                continue

            if current:
                consumed = current[-1][0]
                yield self._to_block(current)
            current = self._seed(list(buffer), index, line, consumed)
            state = DetectorState.IN_BLOCK

        if current:
            yield self._to_block(current)

    def _seed(
        self,
        buffer: list[tuple[int, str]],
        index: int,
        line: str,
        consumed: int,
    ) -> list[tuple[int, str]]:
        """Build the opening lines of a block from the lookback buffer."""
        context = [(i, text) for i, text in buffer if consumed < i < index]

        if ERR_MARKER in line:
            start = len(context)
            while start > 0 and ERR_MARKER in context[start - 1][1]:
                start -= 1
            context = context[start:]

        return context + [(index, line)]

    @staticmethod
    def _to_block(entries: list[tuple[int, str]]) -> ExceptionBlock:
        return ExceptionBlock(
            lines=[text for _, text in entries],
            start_index=entries[0][0],
        )
