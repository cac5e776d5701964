from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..cancellation import CancelToken
from ..contracts import EngineInfo, RecognitionResult, StructuredRecognitionResult


@runtime_checkable
class RecognitionEngine(Protocol):
    """
    Capability interface shared by every recognition backend.

    IMPORTANT:
    - `document_type` is an advisory hint; it may tune an engine but must
      never change the correctness of its output.
    - `info()` is static self-description and performs no I/O.
    - Long-running calls honor `cancel` at every network call and wait.
    """

    def extract_text(self, image_bytes: bytes, *, cancel: CancelToken | None = None) -> RecognitionResult: ...

    def extract_structured_text(
        self, image_bytes: bytes, document_type: str, *, cancel: CancelToken | None = None
    ) -> StructuredRecognitionResult: ...

    def process_pdf(self, pdf_bytes: bytes, *, cancel: CancelToken | None = None) -> RecognitionResult: ...

    def info(self) -> EngineInfo: ...
