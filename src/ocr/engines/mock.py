from __future__ import annotations

import time

from ..cancellation import CancelToken
from ..contracts import (
    BBox,
    BlockType,
    EngineInfo,
    LayoutInfo,
    OcrEngineName,
    Orientation,
    RecognitionResult,
    StructuredRecognitionResult,
    TextBlock,
)

MOCK_TEXT = (
    "This is mock OCR text extracted from the image. In a real implementation, "
    "this would be the actual text content from the PDF page."
)

MOCK_PDF_MARKDOWN = """# Mock PDF Conversion

This is a mock conversion of a PDF document for testing purposes.

## Content

The PDF contained text that has been extracted and converted to Markdown format.

- Item 1
- Item 2
- Item 3

Mock processing complete."""

MOCK_TEXT_CONFIDENCE = 0.85
MOCK_PDF_CONFIDENCE = 0.80
MOCK_PDF_PROCESSING_TIME_S = 0.1


class MockEngine:
    """
    Local, deterministic stand-in engine for tests and offline runs.

    Input bytes are ignored; only the cancel token is honored.
    """

    def __init__(self, *, languages: tuple[str, ...] = ("eng",)) -> None:
        self._languages = tuple(languages) or ("eng",)

    def extract_text(self, image_bytes: bytes, *, cancel: CancelToken | None = None) -> RecognitionResult:
        if cancel is not None:
            cancel.raise_if_done()
        start = time.perf_counter()
        return RecognitionResult(
            text=MOCK_TEXT,
            confidence=MOCK_TEXT_CONFIDENCE,
            language=",".join(self._languages),
            engine=OcrEngineName.MOCK.value,
            processing_time_s=time.perf_counter() - start,
        )

    def extract_structured_text(
        self, image_bytes: bytes, document_type: str, *, cancel: CancelToken | None = None
    ) -> StructuredRecognitionResult:
        basic = self.extract_text(image_bytes, cancel=cancel)
        blocks = [
            TextBlock(
                text="Mock Title",
                confidence=0.9,
                bbox=BBox(x=50, y=50, width=300, height=30),
                block_type=BlockType.TITLE,
            ),
            TextBlock(
                text=(
                    "Mock paragraph content with multiple lines of text that would be "
                    "extracted from the document."
                ),
                confidence=0.85,
                bbox=BBox(x=50, y=100, width=400, height=60),
                block_type=BlockType.PARAGRAPH,
            ),
        ]
        layout = LayoutInfo(
            page_width=600,
            page_height=800,
            orientation=Orientation.PORTRAIT,
            column_count=1,
            has_tables=False,
            has_diagrams=False,
        )
        return StructuredRecognitionResult.from_result(basic, blocks=blocks, layout=layout)

    def process_pdf(self, pdf_bytes: bytes, *, cancel: CancelToken | None = None) -> RecognitionResult:
        if cancel is not None:
            cancel.raise_if_done()
        return RecognitionResult(
            text=MOCK_PDF_MARKDOWN,
            confidence=MOCK_PDF_CONFIDENCE,
            language="en",
            engine=OcrEngineName.MOCK.value,
            processing_time_s=MOCK_PDF_PROCESSING_TIME_S,
        )

    def info(self) -> EngineInfo:
        return EngineInfo(
            name="Mock OCR",
            version="1.0",
            supported_languages=self._languages,
            features=("text_extraction", "basic_layout", "testing"),
            is_local=True,
            requires_auth=False,
        )
