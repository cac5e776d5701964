from __future__ import annotations

import logging

from contracts.errors import DecodeError, EngineUnavailableError, NotFoundError
from ocr.cancellation import CancelToken
from ocr.registry import EngineRegistry
from rasterize_pdf.module import render_pdf

from .contracts import CombinedResult, ConversionConfig, resolve_dpi
from .document_source import DocumentSource

LOGGER = logging.getLogger(__name__)


def _checkpoint(cancel: CancelToken | None) -> None:
    if cancel is not None:
        cancel.raise_if_done()


def convert_document(
    *,
    document_id: str,
    source: DocumentSource,
    registry: EngineRegistry,
    config: ConversionConfig = ConversionConfig(),
    cancel: CancelToken | None = None,
) -> CombinedResult:
    """
    Fetch one PDF, rasterize every page, and run the configured recognition
    engine on the original PDF bytes.

    Steps run sequentially and any failure aborts the whole conversion;
    there is no partial-success result. The returned images are in page
    order and are not aligned with the recognized text beyond that.
    """

    _checkpoint(cancel)
    pdf_bytes = source.fetch(document_id)

    _checkpoint(cancel)
    dpi = resolve_dpi(config.dpi)
    page_images = render_pdf(pdf_bytes, dpi=dpi)
    if not page_images:
        raise DecodeError(
            "PDF contains no pages",
            code="RASTERIZE_NO_PAGES",
            detail={"document_id": document_id},
        )
    LOGGER.info("Rasterized %s: %d page(s) at %s dpi", document_id, len(page_images), dpi)

    try:
        engine = registry.get(config.engine_name)
    except NotFoundError as e:
        raise EngineUnavailableError(
            f"Recognition engine {config.engine_name!r} is not available",
            detail={"engine": config.engine_name, "registered": registry.names()},
        ) from e

    _checkpoint(cancel)
    LOGGER.info("Recognizing %s with engine %s", document_id, config.engine_name)
    result = engine.process_pdf(pdf_bytes, cancel=cancel)

    LOGGER.info(
        "Converted %s: engine=%s confidence=%.2f time=%.1fs pages=%d",
        document_id,
        result.engine,
        result.confidence,
        result.processing_time_s,
        len(page_images),
    )
    return CombinedResult(
        document_id=document_id,
        recognized_text=result.text,
        engine_used=result.engine,
        confidence=result.confidence,
        processing_time_s=result.processing_time_s,
        page_images=page_images,
    )
