from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from contracts.errors import EncodeError, ErrorRecord, PdfPacketError
from rasterize_pdf.contracts import PNG_MIME_TYPE

from .contracts import CombinedResult

_FORBIDDEN_BASE64_CHARS = ("\n", "\r", " ", "\t")

REFINEMENT_INSTRUCTIONS = (
    "The above is the OCR output from the recognition engine. "
    "You also have access to the PNG images of each page below.\n"
    "Please review both the OCR text and the images to create the most accurate Markdown conversion.\n"
    "Correct any OCR errors you can identify by comparing with the visual images.\n"
)


def check_base64_payload(payload: str) -> None:
    """
    Enforce the transport contract for image payloads: standard, padded,
    single-line base64 that decodes and re-encodes to the identical string.
    """

    if len(payload) % 4 != 0:
        raise EncodeError("base64 payload length is not a multiple of 4", detail={"length": len(payload)})
    for ch in _FORBIDDEN_BASE64_CHARS:
        if ch in payload:
            raise EncodeError("base64 payload contains whitespace", detail={"char": repr(ch)})
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodeError(f"base64 payload failed strict decoding: {e}") from e
    if base64.b64encode(decoded).decode("ascii") != payload:
        raise EncodeError("base64 payload does not round-trip")


def encode_image_base64(png_bytes: bytes) -> str:
    encoded = base64.b64encode(png_bytes).decode("ascii")
    check_base64_payload(encoded)
    return encoded


def format_result_text(result: CombinedResult) -> str:
    return (
        "# PDF Conversion Results\n"
        "\n"
        f"## OCR Output ({result.engine_used})\n"
        f"{result.recognized_text}\n"
        "\n"
        "## Processing Info\n"
        f"- Engine: {result.engine_used}\n"
        f"- Confidence: {result.confidence:.2f}\n"
        f"- Processing time: {result.processing_time_s:.2f}s\n"
        f"- Pages converted: {result.page_count}\n"
        "\n"
        "## Instructions for LLM Refinement\n"
        f"{REFINEMENT_INSTRUCTIONS}"
    )


def text_block(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def image_block(data: str, mime_type: str = PNG_MIME_TYPE) -> dict[str, Any]:
    return {"type": "image", "data": data, "mimeType": mime_type}


@dataclass(frozen=True, slots=True)
class ToolResponse:
    """
    Multi-part response handed to the model host: content blocks in order,
    plus the typed error record when the conversion failed.
    """

    is_error: bool
    content: list[dict[str, Any]]
    error: ErrorRecord | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"isError": self.is_error, "content": self.content}
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload


def build_tool_response(result: CombinedResult) -> ToolResponse:
    """
    One text block followed by one image block per page, in page order.
    """

    content = [text_block(format_result_text(result))]
    for page in result.page_images:
        content.append(image_block(encode_image_base64(page.png_bytes), page.mime_type))
    return ToolResponse(is_error=False, content=content)


def build_error_response(error: PdfPacketError) -> ToolResponse:
    record = error.to_record()
    return ToolResponse(
        is_error=True,
        content=[text_block(f"Failed to convert PDF ({record.code}): {record.message}")],
        error=record,
    )


def serialize_tool_response(response: ToolResponse) -> str:
    return json.dumps(response.to_dict(), ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_tool_response_json(*, response: ToolResponse, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_tool_response(response), encoding="utf-8")
