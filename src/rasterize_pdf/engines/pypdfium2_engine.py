from __future__ import annotations

import io

from contracts.errors import DecodeError, EncodeError

from ..contracts import ColorMode
from .base import EngineRenderedPage, PdfRasterEngine


def _encode_png(pil_img) -> bytes:
    buf = io.BytesIO()
    pil_img.save(buf, format="PNG")
    return buf.getvalue()


class Pypdfium2Engine(PdfRasterEngine):
    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        try:
            import pypdfium2 as pdfium  # type: ignore

            return getattr(pdfium, "__version__", None)
        except ImportError:
            return None

    def _require_pdfium(self):
        try:
            import pypdfium2 as pdfium  # type: ignore

            return pdfium
        except ImportError as e:
            raise RuntimeError(
                "Missing dependency: pypdfium2 is required for PDF rasterization."
            ) from e

    def _open(self, pdfium, pdf_bytes: bytes):
        if not pdf_bytes:
            raise DecodeError("Input is empty; expected PDF bytes", detail={"byte_size": 0})
        try:
            return pdfium.PdfDocument(pdf_bytes)
        except pdfium.PdfiumError as e:
            raise DecodeError(
                "Input is not a parseable PDF",
                detail={"byte_size": len(pdf_bytes), "error": str(e)},
            ) from e

    def page_count(self, *, pdf_bytes: bytes) -> int:
        pdfium = self._require_pdfium()
        doc = self._open(pdfium, pdf_bytes)
        try:
            return len(doc)
        finally:
            doc.close()

    def render_pages(
        self,
        *,
        pdf_bytes: bytes,
        dpi: float,
        color_mode: ColorMode,
    ) -> list[EngineRenderedPage]:
        pdfium = self._require_pdfium()
        doc = self._open(pdfium, pdf_bytes)

        scale = dpi / 72.0  # PDF points are 1/72 inch

        rendered: list[EngineRenderedPage] = []
        try:
            for idx in range(len(doc)):
                page_num = idx + 1
                page = doc[idx]
                try:
                    bitmap = page.render(scale=scale)
                    pil_img = bitmap.to_pil()
                except pdfium.PdfiumError as e:
                    raise DecodeError(
                        f"Failed to render page {page_num}",
                        detail={"page_num": page_num, "error": str(e)},
                    ) from e
                finally:
                    page.close()

                if color_mode == ColorMode.GRAY:
                    pil_img = pil_img.convert("L")
                else:
                    pil_img = pil_img.convert("RGB")

                width_px, height_px = pil_img.size
                try:
                    png_bytes = _encode_png(pil_img)
                except (OSError, ValueError) as e:
                    # One bad page voids the whole render.
                    raise EncodeError(
                        f"Failed to encode page {page_num} as PNG",
                        detail={"page_num": page_num, "error": repr(e)},
                    ) from e

                rendered.append(
                    EngineRenderedPage(
                        page_num=page_num,
                        png_bytes=png_bytes,
                        width_px=int(width_px),
                        height_px=int(height_px),
                    )
                )
        finally:
            doc.close()

        return rendered
