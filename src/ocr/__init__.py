"""
Recognition stage (image or whole-PDF -> text).

- `RecognitionEngine` is the capability interface; `MathpixEngine` talks to the
  remote service through the submit/poll/fetch job protocol in `remote_job`,
  `MockEngine` is the deterministic local stand-in.
- `EngineRegistry` holds named engines and recommends one for a document.
- Only `cli` reads environment variables; everything else takes its
  configuration explicitly (`MathpixConfig`).
"""

from .cancellation import CancelToken
from .contracts import (
    BBox,
    BlockType,
    EngineInfo,
    LayoutInfo,
    MathpixConfig,
    OcrEngineName,
    Orientation,
    RecognitionResult,
    StructuredRecognitionResult,
    Table,
    TableCell,
    TableRow,
    TextBlock,
)
from .engines import MathpixEngine, MockEngine, RecognitionEngine
from .registry import EngineRegistry, build_default_registry, build_registry
from .remote_job import JobState, MathpixJobClient, RemoteJob, RemoteJobResult

__all__ = [
    "BBox",
    "BlockType",
    "CancelToken",
    "EngineInfo",
    "EngineRegistry",
    "JobState",
    "LayoutInfo",
    "MathpixConfig",
    "MathpixEngine",
    "MathpixJobClient",
    "MockEngine",
    "OcrEngineName",
    "Orientation",
    "RecognitionEngine",
    "RecognitionResult",
    "RemoteJob",
    "RemoteJobResult",
    "StructuredRecognitionResult",
    "Table",
    "TableCell",
    "TableRow",
    "TextBlock",
    "build_default_registry",
    "build_registry",
]
