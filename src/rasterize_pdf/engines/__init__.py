from .base import EngineRenderedPage, PdfRasterEngine
from .pypdfium2_engine import Pypdfium2Engine

__all__ = ["EngineRenderedPage", "PdfRasterEngine", "Pypdfium2Engine"]
