from __future__ import annotations

import logging

from contracts.errors import EncodeError, ErrorRecord

from .contracts import ColorMode, PageImage, RasterEngineName, RasterizeConfig
from .engines import Pypdfium2Engine

LOGGER = logging.getLogger(__name__)


def _get_engine(engine: RasterEngineName):
    if engine == RasterEngineName.PYPDFIUM2:
        return Pypdfium2Engine()
    raise ValueError(f"Unsupported rasterization engine: {engine}")


def validate_page_images(*, pages: tuple[PageImage, ...], expected_count: int) -> list[ErrorRecord]:
    """
    Lightweight structural validation of a render result:
    - one image per reported page
    - page numbers are 1-indexed and strictly ascending (document order)
    - every image carries PNG bytes and positive dimensions
    """

    errs: list[ErrorRecord] = []
    if len(pages) != expected_count:
        errs.append(
            ErrorRecord(
                code="RASTERIZE_PAGE_COUNT_MISMATCH",
                message="Rendered image count differs from the document page count",
                detail={"expected": expected_count, "rendered": len(pages)},
            )
        )

    if [p.page_num for p in pages] != list(range(1, len(pages) + 1)):
        errs.append(
            ErrorRecord(
                code="RASTERIZE_NONDETERMINISTIC_ORDER",
                message="Pages are not 1-indexed in ascending document order",
                detail={"page_nums": [p.page_num for p in pages]},
            )
        )

    for p in pages:
        if not p.png_bytes or p.width_px <= 0 or p.height_px <= 0:
            errs.append(
                ErrorRecord(
                    code="RASTERIZE_EMPTY_IMAGE",
                    message="Rendered page has no image data",
                    detail={"page_num": p.page_num, "width_px": p.width_px, "height_px": p.height_px},
                )
            )

    return errs


def render_pdf(
    pdf_bytes: bytes,
    *,
    dpi: float,
    color_mode: ColorMode = ColorMode.RGB,
    engine: RasterEngineName = RasterEngineName.PYPDFIUM2,
) -> tuple[PageImage, ...]:
    """
    Render every page of an in-memory PDF to a PNG image, in page order.

    Raises `DecodeError` when the bytes are not a PDF and `EncodeError` when
    any page fails to encode. No partial results are returned.
    """

    config = RasterizeConfig(dpi=dpi, color_mode=color_mode, engine=engine)
    backend = _get_engine(config.engine)

    page_count = backend.page_count(pdf_bytes=pdf_bytes)
    rendered = backend.render_pages(pdf_bytes=pdf_bytes, dpi=config.dpi, color_mode=config.color_mode)

    pages = tuple(
        PageImage(
            page_num=rp.page_num,
            png_bytes=rp.png_bytes,
            width_px=rp.width_px,
            height_px=rp.height_px,
        )
        for rp in rendered
    )

    errors = validate_page_images(pages=pages, expected_count=page_count)
    if errors:
        raise EncodeError(
            "Rendered pages failed validation",
            detail={"errors": [e.to_dict() for e in errors]},
        )

    LOGGER.debug(
        "Rendered %d page(s) at %s dpi with %s", len(pages), config.dpi, backend.backend_id()
    )
    return pages


def render_backend_info(engine: RasterEngineName = RasterEngineName.PYPDFIUM2) -> dict[str, str | None]:
    """
    Identify the rasterization backend for audit manifests.
    """

    backend = _get_engine(engine)
    return {"backend": backend.backend_id(), "backend_version": backend.backend_version()}
