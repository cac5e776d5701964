from .base import RecognitionEngine
from .mathpix import MathpixEngine
from .mock import MockEngine

__all__ = ["MathpixEngine", "MockEngine", "RecognitionEngine"]
