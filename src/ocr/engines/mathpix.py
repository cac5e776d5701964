from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from ..cancellation import CancelToken
from ..contracts import EngineInfo, MathpixConfig, OcrEngineName, RecognitionResult, StructuredRecognitionResult
from ..markdown_blocks import parse_markdown
from ..remote_job import MathpixJobClient

LOGGER = logging.getLogger(__name__)

# Mathpix does not report a per-document score.
MATHPIX_CONFIDENCE = 0.95

PDF_CONVERSION_OPTIONS: dict[str, Any] = {"conversion_formats": {"md": True}}

MATHPIX_FEATURES = ("text_extraction", "math_recognition", "table_extraction", "high_accuracy")


class MathpixEngine:
    """
    Recognition via the Mathpix PDF API (remote, authenticated).

    Images and PDFs both go through the asynchronous job protocol in
    `ocr.remote_job`; the service answers with markdown.
    """

    def __init__(
        self,
        *,
        config: MathpixConfig,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._clock = clock
        self._client = MathpixJobClient(config=config, session=session, clock=clock)

    def _recognize(
        self,
        *,
        content: bytes,
        filename: str,
        content_type: str,
        options: dict[str, Any] | None,
        cancel: CancelToken | None,
    ) -> RecognitionResult:
        start = self._clock()
        outcome = self._client.run(
            content=content,
            filename=filename,
            content_type=content_type,
            options=options,
            cancel=cancel if cancel is not None else CancelToken(),
        )
        return RecognitionResult(
            text=outcome.text,
            confidence=MATHPIX_CONFIDENCE,
            language=",".join(self._config.languages),
            engine=OcrEngineName.MATHPIX.value,
            processing_time_s=max(0.0, self._clock() - start),
        )

    def extract_text(self, image_bytes: bytes, *, cancel: CancelToken | None = None) -> RecognitionResult:
        return self._recognize(
            content=image_bytes,
            filename="image.png",
            content_type="image/png",
            options=None,
            cancel=cancel,
        )

    def extract_structured_text(
        self, image_bytes: bytes, document_type: str, *, cancel: CancelToken | None = None
    ) -> StructuredRecognitionResult:
        LOGGER.debug("Structured extraction with document type hint %r", document_type)
        basic = self.extract_text(image_bytes, cancel=cancel)
        parsed = parse_markdown(basic.text)
        return StructuredRecognitionResult.from_result(
            basic, blocks=parsed.blocks, layout=parsed.layout, tables=parsed.tables
        )

    def process_pdf(self, pdf_bytes: bytes, *, cancel: CancelToken | None = None) -> RecognitionResult:
        return self._recognize(
            content=pdf_bytes,
            filename="document.pdf",
            content_type="application/pdf",
            options=PDF_CONVERSION_OPTIONS,
            cancel=cancel,
        )

    def info(self) -> EngineInfo:
        return EngineInfo(
            name="Mathpix",
            version="v3",
            supported_languages=tuple(self._config.languages),
            features=MATHPIX_FEATURES,
            is_local=False,
            requires_auth=True,
        )
