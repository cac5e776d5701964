"""
Cross-stage contracts shared by the rasterizer, the recognition engines and
the conversion orchestrator.

Only the failure taxonomy lives here; stage-specific data models stay in each
stage's own `contracts.py`.
"""

from .errors import (
    DeadlineExceeded,
    DecodeError,
    EncodeError,
    EngineUnavailableError,
    ErrorRecord,
    JobFailed,
    JobTimedOut,
    NotFoundError,
    OperationCancelled,
    PdfPacketError,
    SubmissionError,
)

__all__ = [
    "DeadlineExceeded",
    "DecodeError",
    "EncodeError",
    "EngineUnavailableError",
    "ErrorRecord",
    "JobFailed",
    "JobTimedOut",
    "NotFoundError",
    "OperationCancelled",
    "PdfPacketError",
    "SubmissionError",
]
