"""Data models for the log miner."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from functools import cached_property
from typing import Optional

from .parsing import parse_timestamp, extract_thread_id, extract_level, strip_prefix


@dataclass
class LogLine:
    """A raw log line with lazily parsed prefix fields."""
    text: str
    index: int = 0

    @cached_property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.text)

    @cached_property
    def thread_id(self) -> Optional[str]:
        return extract_thread_id(self.text)

    @cached_property
    def level(self) -> Optional[str]:
        return extract_level(self.text)

    @cached_property
    def tail(self) -> str:
        return strip_prefix(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass
class ExceptionBlock:
    """A contiguous run of lines belonging to one exception occurrence."""
    lines: list[str] = field(default_factory=list)
    start_index: int = 0

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.lines) - 1

    def __str__(self) -> str:
        return self.text

    def to_dict(self) -> dict:
        return {
            "start_line": self.start_index + 1,
            "line_count": len(self.lines),
            "text": self.text,
        }


@dataclass
class AdapterError:
    """A structured business error reported by an adapter response."""
    timestamp: str
    thread_id: str
    operation: str
    code: str = ""
    description: str = ""
    reason: str = ""

    @property
    def signature(self) -> str:
        parts = (self.operation, self.code, self.reason)
        return "|".join(p.strip().lower() for p in parts)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BlockCluster:
    """A group of unique exception blocks with similar signatures."""
    cluster_id: int
    blocks: list[ExceptionBlock] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    representative: str = ""

    @property
    def size(self) -> int:
        return len(self.blocks)

    def to_dict(self) -> dict:
        return {
            "cluster_id": self.cluster_id,
            "blocks": self.size,
            "keywords": self.keywords[:10],
            "representative": self.representative,
        }


@dataclass
class TransactionEvidence:
    """The register, payment and billing spans of one transaction."""
    token: str
    thread_id: str
    timestamp: str
    bill_id: str
    serial: Optional[str] = None
    register: list[str] = field(default_factory=list)
    payment: list[str] = field(default_factory=list)
    billing: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "thread_id": self.thread_id,
            "timestamp": self.timestamp,
            "bill_id": self.bill_id,
            "serial": self.serial,
            "register": self.register,
            "pay": self.payment,
            "billList": self.billing,
        }

    def render(self) -> str:
        """Render the three spans as one labelled text."""
        sections = [
            ("REGISTER", self.register),
            ("PAYMENT", self.payment),
            ("BILLING", self.billing),
        ]
        out = []
        for title, span in sections:
            out.append(f"===== {title} =====")
            out.extend(span)
            out.append("")
        return "\n".join(out).rstrip() + "\n"


@dataclass
class Attachment:
    """A file handed to a notifier alongside the message body."""
    filename: str
    content: bytes
    mime_type: str = "text/plain"


@dataclass
class Digest:
    """A ready-to-deliver notification."""
    subject: str
    body: str
    attachment: Optional[Attachment] = None
    item_count: int = 0


@dataclass
class ScanResult:
    """Outcome of running both pipelines over one set of lines."""
    total_lines: int = 0
    blocks: list[ExceptionBlock] = field(default_factory=list)
    clusters: list[BlockCluster] = field(default_factory=list)
    adapter_errors: list[AdapterError] = field(default_factory=list)
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "summary": {
                "total_lines_processed": self.total_lines,
                "unique_exception_blocks": len(self.blocks),
                "unique_adapter_errors": len(self.adapter_errors),
            },
            "exception_blocks": [b.to_dict() for b in self.blocks],
            "clusters": [c.to_dict() for c in self.clusters],
            "adapter_errors": [e.to_dict() for e in self.adapter_errors],
            "processing_time_ms": round(self.processing_time_ms, 2),
        }
