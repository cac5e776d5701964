from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


PNG_MIME_TYPE = "image/png"


class ColorMode(str, Enum):
    RGB = "rgb"
    GRAY = "gray"


class RasterEngineName(str, Enum):
    """
    Rendering backend identifiers.
    """

    PYPDFIUM2 = "pypdfium2"


@dataclass(frozen=True, slots=True)
class PageImage:
    """
    One rendered page, losslessly encoded.

    A document yields an ordered, immutable tuple of these, one per page.
    """

    page_num: int  # 1-indexed
    png_bytes: bytes
    width_px: int
    height_px: int
    mime_type: str = PNG_MIME_TYPE

    def to_dict(self) -> dict[str, Any]:
        # Image bytes are not JSON material; transport encoding is explicit.
        return {
            "page_num": self.page_num,
            "width_px": self.width_px,
            "height_px": self.height_px,
            "mime_type": self.mime_type,
            "byte_size": len(self.png_bytes),
        }


@dataclass(frozen=True, slots=True)
class RasterizeConfig:
    """
    Rasterizer parameters.

    The rasterizer never substitutes a default resolution; callers resolve it
    (see `conversion.contracts.resolve_dpi`).
    """

    dpi: float
    color_mode: ColorMode = ColorMode.RGB
    engine: RasterEngineName = RasterEngineName.PYPDFIUM2

    def __post_init__(self) -> None:
        if not isinstance(self.dpi, (int, float)) or isinstance(self.dpi, bool):
            raise TypeError("dpi must be a number")
        if self.dpi <= 0:
            raise ValueError("dpi must be a positive number")
