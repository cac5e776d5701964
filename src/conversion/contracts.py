from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from ocr.contracts import OcrEngineName
from rasterize_pdf.contracts import PageImage

DEFAULT_DPI = 150


def resolve_dpi(dpi: float | None) -> float:
    """
    Apply the caller-side default resolution: unset or non-positive => 150.
    """

    if dpi is None or dpi <= 0:
        return DEFAULT_DPI
    return dpi


@dataclass(frozen=True, slots=True)
class ConversionConfig:
    dpi: float | None = None  # None => DEFAULT_DPI
    engine_name: str = OcrEngineName.MATHPIX.value


@dataclass(frozen=True, slots=True)
class DocumentInfo:
    id: str
    name: str
    size: int
    modified_time: str  # ISO-8601, UTC
    mime_type: str = "application/pdf"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class CombinedResult:
    """
    One conversion's packet: recognized text plus the page images.

    Text and images are paired positionally only; matching OCR text to a
    specific page is left to the downstream consumer.
    """

    document_id: str
    recognized_text: str
    engine_used: str
    confidence: float
    processing_time_s: float
    page_images: tuple[PageImage, ...]

    @property
    def page_count(self) -> int:
        return len(self.page_images)

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "recognized_text": self.recognized_text,
            "engine_used": self.engine_used,
            "confidence": self.confidence,
            "processing_time_s": self.processing_time_s,
            "page_images": [p.to_dict() for p in self.page_images],
        }
