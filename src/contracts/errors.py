from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """
    Machine-readable failure record, as written into response artifacts.
    """

    code: str
    message: str
    detail: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PdfPacketError(RuntimeError):
    """
    Base class for every typed conversion failure.

    Each subclass carries a stable default `code`; callers may override it
    to narrow the reason (e.g. a decode failure caused by an empty document).
    """

    code = "PDF_PACKET_ERROR"

    def __init__(self, message: str, *, code: str | None = None, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(code=self.code, message=self.message, detail=self.detail)


class DecodeError(PdfPacketError):
    """Input bytes are not a parseable PDF."""

    code = "RASTERIZE_DECODE_FAILED"


class EncodeError(PdfPacketError):
    """A page raster or transport payload could not be encoded."""

    code = "RASTERIZE_ENCODE_FAILED"


class SubmissionError(PdfPacketError):
    """The recognition service rejected the upload."""

    code = "JOB_SUBMISSION_FAILED"


class JobFailed(PdfPacketError):
    """The recognition service reported failure, or a poll/fetch failed."""

    code = "JOB_FAILED"


class JobTimedOut(PdfPacketError):
    """The job never reached a terminal status within its time budget."""

    code = "JOB_TIMED_OUT"


class EngineUnavailableError(PdfPacketError):
    """The requested recognition engine is not registered."""

    code = "ENGINE_UNAVAILABLE"


class NotFoundError(PdfPacketError):
    code = "NOT_FOUND"


class OperationCancelled(PdfPacketError):
    """The caller cancelled the operation."""

    code = "OPERATION_CANCELLED"


class DeadlineExceeded(OperationCancelled):
    """The caller-supplied deadline expired."""

    code = "DEADLINE_EXCEEDED"
