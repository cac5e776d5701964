from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..contracts import ColorMode


@dataclass(frozen=True, slots=True)
class EngineRenderedPage:
    page_num: int  # 1-indexed
    png_bytes: bytes
    width_px: int
    height_px: int


class PdfRasterEngine(ABC):
    """
    Rendering engine abstraction.

    Engines must:
    - Render PDF pages held in memory to PNG-encoded rasters
    - Render strictly in document order, one entry per page
    - Raise `DecodeError` for unparseable input and `EncodeError` when a page
      cannot be encoded (never return a partial page list)
    - Hold no state across calls
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    @abstractmethod
    def page_count(self, *, pdf_bytes: bytes) -> int:
        raise NotImplementedError

    @abstractmethod
    def render_pages(
        self,
        *,
        pdf_bytes: bytes,
        dpi: float,
        color_mode: ColorMode,
    ) -> list[EngineRenderedPage]:
        raise NotImplementedError
