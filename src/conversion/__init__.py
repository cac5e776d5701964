"""
Conversion orchestration (document id -> text + page images).

`convert_document` fetches a PDF from a `DocumentSource`, rasterizes it with
`rasterize_pdf`, recognizes it with an engine from an `ocr.EngineRegistry`,
and returns a `CombinedResult`. `artifacts` renders that result (or a typed
error) as the multi-part tool response.
"""

from .artifacts import (
    ToolResponse,
    build_error_response,
    build_tool_response,
    check_base64_payload,
    encode_image_base64,
)
from .contracts import DEFAULT_DPI, CombinedResult, ConversionConfig, DocumentInfo, resolve_dpi
from .document_source import DocumentSource, LocalPdfSource
from .module import convert_document

__all__ = [
    "DEFAULT_DPI",
    "CombinedResult",
    "ConversionConfig",
    "DocumentInfo",
    "DocumentSource",
    "LocalPdfSource",
    "ToolResponse",
    "build_error_response",
    "build_tool_response",
    "check_base64_payload",
    "convert_document",
    "encode_image_base64",
    "resolve_dpi",
]
