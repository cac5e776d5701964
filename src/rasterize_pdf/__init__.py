"""
Rasterizer (PDF bytes -> ordered per-page PNG images).

This package is intentionally limited to format conversion:
- It renders in-memory PDFs to lossless page images, strictly in page order.
- It performs NO OCR, text extraction, or layout inference.
- It holds no state across calls and never applies a default resolution.
"""

from .contracts import ColorMode, PageImage, RasterEngineName, RasterizeConfig
from .module import render_backend_info, render_pdf, validate_page_images

__all__ = [
    "ColorMode",
    "PageImage",
    "RasterEngineName",
    "RasterizeConfig",
    "render_backend_info",
    "render_pdf",
    "validate_page_images",
]
