"""Block signatures, developer/business classification and de-duplication."""

import re
from typing import Callable, Hashable, Iterable, TypeVar

from .models import ExceptionBlock
from .parsing import PREFIX_PATTERN

T = TypeVar("T")

# Patterns for volatile substrings (order matters - more specific first)
SIGNATURE_PATTERNS = [
    # Timestamps anywhere in the line
    (re.compile(r'\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?'), '<ts>'),

    # Thread ids, bracketed or bare
    (re.compile(r'\[T-[A-Za-z0-9]+\]|\[T\d+\]'), '[Txxxx]'),
    (re.compile(r'\bT-[A-Za-z0-9]+\b|\bT\d+\b'), 'Txxxx'),

    # Object identity hashes and memory addresses
    (re.compile(r'@[0-9a-fA-F]{6,}'), '@xxxx'),
    (re.compile(r'\b0x[0-9a-fA-F]+\b'), '0xXXXX'),

    # Long numeric ids
    (re.compile(r'\b\d{6,}\b'), '<num>'),
]

STACK_FRAME_LINE = re.compile(r'^\s*at\s+')
FRAME_ARGUMENTS = re.compile(r'\(.*\)')

# Business-failure markers written by adapters
ADAPTER_CODE_PATTERN = re.compile(r'\bCode: E\d{6}\b')
ADAPTER_DESCRIPTION_PATTERN = re.compile(r'\|- Description: ', re.IGNORECASE)
ADAPTER_REASON_PATTERN = re.compile(r'\|- Reason: ', re.IGNORECASE)

# Developer-relevant evidence
STACK_FRAME_PATTERN = re.compile(r'^\s*at\s+\S+\(.*\)', re.MULTILINE)
CAUSED_BY_PATTERN = re.compile(r'^\s*Caused by: ', re.IGNORECASE | re.MULTILINE)
# Package-qualified type names only; bare words like "GatewayError" are business text
EXCEPTION_TYPE_PATTERN = re.compile(
    r'\b(?:[A-Za-z_$][\w$]*\.)+[A-Z][\w$]*(?:Exception|Error)\b'
)


def normalize_line(line: str) -> str:
    """Strip the log prefix and replace volatile values with placeholders."""
    normalized = PREFIX_PATTERN.sub('', line, count=1)
    for pattern, placeholder in SIGNATURE_PATTERNS:
        normalized = pattern.sub(placeholder, normalized)
    return normalized


def signature_of(block) -> str:
    """
    Compute the recurring-failure fingerprint of a block.

    Only exception-name lines (lowercased) and stack frames with their
    arguments elided survive, so blocks that differ in timestamps, thread
    ids, addresses or long ids share a signature. A block with neither
    falls back to its whole normalized text.

    Args:
        block: ExceptionBlock or raw block text

    Returns:
        Deterministic signature string
    """
    text = block.text if isinstance(block, ExceptionBlock) else str(block)
    normalized = [normalize_line(line) for line in text.splitlines()]

    kept = []
    for line in normalized:
        if STACK_FRAME_LINE.match(line):
            kept.append(FRAME_ARGUMENTS.sub('()', line.strip()))
        elif 'Exception' in line or 'Error' in line:
            kept.append(line.strip().lower())

    if not kept:
        return "\n".join(normalized).strip().lower()
    return "\n".join(kept)


class BlockClassifier:
    """
    Separates developer-actionable blocks from business-error noise.

    Adapter responses such as ``Code: E010002`` are expected failures; they
    are dropped unless the block also carries a stack frame, a
    ``Caused by:`` line or an exception type name.
    """

    def is_adapter_business_only(self, text: str) -> bool:
        looks_adapter = (
            ADAPTER_CODE_PATTERN.search(text) is not None
            or ADAPTER_DESCRIPTION_PATTERN.search(text) is not None
            or ADAPTER_REASON_PATTERN.search(text) is not None
        )
        return looks_adapter and not self.is_developer_relevant(text)

    def is_developer_relevant(self, text: str) -> bool:
        stripped = "\n".join(
            PREFIX_PATTERN.sub('', line, count=1) for line in text.splitlines()
        )
        return (
            EXCEPTION_TYPE_PATTERN.search(stripped) is not None
            or STACK_FRAME_PATTERN.search(stripped) is not None
            or CAUSED_BY_PATTERN.search(stripped) is not None
        )

    def classify(self, blocks: Iterable[ExceptionBlock]) -> list[ExceptionBlock]:
        """Keep only the blocks a developer should look at."""
        kept = []
        for block in blocks:
            text = block.text
            if self.is_adapter_business_only(text):
                continue
            if self.is_developer_relevant(text):
                kept.append(block)
        return kept


def dedupe_by(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Order-preserving de-duplication; the first item per key wins."""
    seen: dict = {}
    for item in items:
        seen.setdefault(key(item), item)
    return list(seen.values())


def dedupe_blocks(blocks: Iterable[ExceptionBlock]) -> list[ExceptionBlock]:
    """Collapse blocks to the earliest representative per signature."""
    return dedupe_by(blocks, signature_of)
