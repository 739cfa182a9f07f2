"""Typed failures raised by the extraction and correlation engine."""

from typing import Optional


class LogMinerError(Exception):
    """Base class for every engine-level failure."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class InvalidQuery(LogMinerError):
    """Caller-supplied parameters are unusable (short token, bad page)."""

    code = "invalid_query"


class NotFound(LogMinerError):
    """The search token does not occur in the corpus."""

    code = "not_found"

    def __init__(self, token: str):
        super().__init__(f"No line contains '{token}'")
        self.token = token


class MalformedAnchor(LogMinerError):
    """The anchor line lacks a thread id or a timestamp."""

    code = "malformed_anchor"

    def __init__(self, line: str, missing: str):
        super().__init__(f"Anchor line has no {missing}: {line[:120]}")
        self.line = line
        self.missing = missing


class SpanNotFound(LogMinerError):
    """An expected REQ/RES boundary is missing."""

    code = "span_not_found"

    def __init__(self, kind: str, detail: Optional[str] = None):
        message = f"Span boundary not found: {kind}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.kind = kind

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["kind"] = self.kind
        return data


class IdNotFound(LogMinerError):
    """The register span carries no bill id to join on."""

    code = "id_not_found"


class IOUnavailable(LogMinerError):
    """The source file is missing or unreadable."""

    code = "io_unavailable"
