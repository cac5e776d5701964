from __future__ import annotations

import base64
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from contracts.errors import (
    DecodeError,
    EncodeError,
    EngineUnavailableError,
    JobTimedOut,
    NotFoundError,
    OperationCancelled,
)
from conversion.artifacts import (
    build_error_response,
    build_tool_response,
    check_base64_payload,
    encode_image_base64,
    format_result_text,
    serialize_tool_response,
    write_tool_response_json,
)
from conversion.contracts import DEFAULT_DPI, CombinedResult, ConversionConfig, resolve_dpi
from conversion.module import convert_document
from ocr.cancellation import CancelToken
from ocr.contracts import EngineInfo, RecognitionResult
from ocr.engines import MockEngine
from ocr.registry import build_registry
from rasterize_pdf.contracts import PageImage
from rasterize_pdf.module import render_pdf

from fakes import make_pdf


class _InMemorySource:
    def __init__(self, documents: dict[str, bytes]) -> None:
        self._documents = documents
        self.fetched: list[str] = []

    def fetch(self, document_id: str) -> bytes:
        self.fetched.append(document_id)
        if document_id not in self._documents:
            raise NotFoundError("Document not found", detail={"document_id": document_id})
        return self._documents[document_id]

    def search(self, query: str, *, max_files: int = 10):
        return []


class _RecordingEngine:
    """
    Remote-looking engine that records what it was asked to recognize.
    """

    def __init__(self, *, error: Exception | None = None) -> None:
        self.pdf_inputs: list[bytes] = []
        self._error = error

    def extract_text(self, image_bytes: bytes, *, cancel=None):
        raise NotImplementedError

    def extract_structured_text(self, image_bytes: bytes, document_type: str, *, cancel=None):
        raise NotImplementedError

    def process_pdf(self, pdf_bytes: bytes, *, cancel=None) -> RecognitionResult:
        self.pdf_inputs.append(pdf_bytes)
        if self._error is not None:
            raise self._error
        return RecognitionResult(
            text="# Recognized",
            confidence=0.95,
            language="en",
            engine="mathpix",
            processing_time_s=12.5,
        )

    def info(self) -> EngineInfo:
        return EngineInfo(
            name="Recording",
            version="0",
            supported_languages=("en",),
            features=(),
            is_local=False,
            requires_auth=True,
        )


def _page(page_num: int) -> PageImage:
    return PageImage(page_num=page_num, png_bytes=b"\x89PNG page %d" % page_num, width_px=10, height_px=20)


class TestResolveDpi(unittest.TestCase):
    def test_default_applies_to_unset_and_non_positive(self) -> None:
        self.assertEqual(resolve_dpi(None), DEFAULT_DPI)
        self.assertEqual(resolve_dpi(0), DEFAULT_DPI)
        self.assertEqual(resolve_dpi(-5), DEFAULT_DPI)
        self.assertEqual(resolve_dpi(300), 300)


class TestConvertDocument(unittest.TestCase):
    def setUp(self) -> None:
        self.pdf = make_pdf((100, 200, 300))
        self.source = _InMemorySource({"docs/paper.pdf": self.pdf})

    def test_end_to_end_with_real_rasterizer(self) -> None:
        engine = _RecordingEngine()
        registry = build_registry(engines={"mathpix": engine, "mock": MockEngine()})

        result = convert_document(document_id="docs/paper.pdf", source=self.source, registry=registry)

        self.assertEqual(result.document_id, "docs/paper.pdf")
        self.assertEqual(result.recognized_text, "# Recognized")
        self.assertEqual(result.engine_used, "mathpix")
        self.assertEqual(result.confidence, 0.95)
        self.assertEqual(result.processing_time_s, 12.5)
        self.assertEqual([p.page_num for p in result.page_images], [1, 2, 3])
        # The engine sees the original document, not the rasters.
        self.assertEqual(engine.pdf_inputs, [self.pdf])

    def test_default_dpi_passed_to_rasterizer(self) -> None:
        registry = build_registry(engines={"mathpix": _RecordingEngine()})
        with patch("conversion.module.render_pdf", return_value=(_page(1),)) as render:
            convert_document(document_id="docs/paper.pdf", source=self.source, registry=registry)
        render.assert_called_once_with(self.pdf, dpi=DEFAULT_DPI)

    def test_configured_engine_is_used(self) -> None:
        remote = _RecordingEngine()
        registry = build_registry(engines={"mathpix": remote, "mock": MockEngine()})
        with patch("conversion.module.render_pdf", return_value=(_page(1), _page(2))):
            result = convert_document(
                document_id="docs/paper.pdf",
                source=self.source,
                registry=registry,
                config=ConversionConfig(dpi=96, engine_name="mock"),
            )
        self.assertEqual(result.engine_used, "mock")
        self.assertEqual(result.confidence, 0.80)
        self.assertEqual(remote.pdf_inputs, [])

    def test_unregistered_engine_is_unavailable(self) -> None:
        registry = build_registry(engines={"mock": MockEngine()})
        with patch("conversion.module.render_pdf", return_value=(_page(1),)):
            with self.assertRaises(EngineUnavailableError) as ctx:
                convert_document(document_id="docs/paper.pdf", source=self.source, registry=registry)
        self.assertEqual(ctx.exception.detail["engine"], "mathpix")

    def test_unknown_document(self) -> None:
        registry = build_registry(engines={"mathpix": _RecordingEngine()})
        with self.assertRaises(NotFoundError):
            convert_document(document_id="missing.pdf", source=self.source, registry=registry)

    def test_not_a_pdf_never_reaches_engine(self) -> None:
        engine = _RecordingEngine()
        registry = build_registry(engines={"mathpix": engine})
        source = _InMemorySource({"bad.pdf": b"not a pdf"})
        with self.assertRaises(DecodeError):
            convert_document(document_id="bad.pdf", source=source, registry=registry)
        self.assertEqual(engine.pdf_inputs, [])

    def test_zero_pages_is_decode_error(self) -> None:
        registry = build_registry(engines={"mathpix": _RecordingEngine()})
        with patch("conversion.module.render_pdf", return_value=()):
            with self.assertRaises(DecodeError) as ctx:
                convert_document(document_id="docs/paper.pdf", source=self.source, registry=registry)
        self.assertEqual(ctx.exception.code, "RASTERIZE_NO_PAGES")

    def test_engine_failure_propagates(self) -> None:
        registry = build_registry(engines={"mathpix": _RecordingEngine(error=JobTimedOut("late"))})
        with patch("conversion.module.render_pdf", return_value=(_page(1),)):
            with self.assertRaises(JobTimedOut):
                convert_document(document_id="docs/paper.pdf", source=self.source, registry=registry)

    def test_cancelled_before_start_fetches_nothing(self) -> None:
        token = CancelToken()
        token.cancel()
        registry = build_registry(engines={"mathpix": _RecordingEngine()})
        with self.assertRaises(OperationCancelled):
            convert_document(document_id="docs/paper.pdf", source=self.source, registry=registry, cancel=token)
        self.assertEqual(self.source.fetched, [])


class TestToolResponse(unittest.TestCase):
    def _result(self, pages: tuple[PageImage, ...]) -> CombinedResult:
        return CombinedResult(
            document_id="a.pdf",
            recognized_text="Hello $x$",
            engine_used="mathpix",
            confidence=0.95,
            processing_time_s=3.25,
            page_images=pages,
        )

    def test_text_block_then_one_image_per_page(self) -> None:
        pages = (_page(1), _page(2), _page(3))
        response = build_tool_response(self._result(pages))

        self.assertFalse(response.is_error)
        self.assertEqual(len(response.content), 4)
        self.assertEqual(response.content[0]["type"], "text")
        for block, page in zip(response.content[1:], pages):
            self.assertEqual(block["type"], "image")
            self.assertEqual(block["mimeType"], "image/png")
            self.assertEqual(base64.b64decode(block["data"]), page.png_bytes)

    def test_result_text(self) -> None:
        text = format_result_text(self._result((_page(1), _page(2))))
        self.assertTrue(text.startswith("# PDF Conversion Results\n"))
        self.assertIn("Hello $x$", text)
        self.assertIn("## OCR Output (mathpix)\n", text)
        self.assertNotIn("Mathpix OCR Output", text)
        self.assertIn("- Engine: mathpix", text)
        self.assertIn("- Confidence: 0.95", text)
        self.assertIn("- Pages converted: 2", text)
        self.assertIn("## Instructions for LLM Refinement", text)

    def test_error_response_carries_typed_record(self) -> None:
        response = build_error_response(EngineUnavailableError("no engine", detail={"engine": "mathpix"}))
        payload = json.loads(serialize_tool_response(response))
        self.assertTrue(payload["isError"])
        self.assertEqual(payload["error"]["code"], "ENGINE_UNAVAILABLE")
        self.assertIn("ENGINE_UNAVAILABLE", payload["content"][0]["text"])

    def test_write_is_stable(self) -> None:
        response = build_tool_response(self._result((_page(1),)))
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "sub" / "response.json"
            write_tool_response_json(response=response, out_file=out)
            first = out.read_bytes()
            write_tool_response_json(response=response, out_file=out)
            self.assertEqual(first, out.read_bytes())


class TestBase64Contract(unittest.TestCase):
    def test_encoded_payloads_satisfy_contract(self) -> None:
        for size in range(0, 70):
            payload = encode_image_base64(bytes(range(256))[:size] * 3)
            self.assertEqual(len(payload) % 4, 0)
            for ch in ("\n", "\r", " ", "\t"):
                self.assertNotIn(ch, payload)
            self.assertEqual(base64.b64encode(base64.b64decode(payload)).decode("ascii"), payload)

    def test_real_page_images(self) -> None:
        for page in render_pdf(make_pdf((100, 150)), dpi=72):
            check_base64_payload(encode_image_base64(page.png_bytes))

    def test_rejects_malformed_payloads(self) -> None:
        good = base64.b64encode(b"hello world!").decode("ascii")
        check_base64_payload(good)
        for bad in (good[:-1], good[:8] + "\n" + good[8:11], "ab d", "ab\tc", "@@@@", "QQ=A", "QR=="):
            with self.assertRaises(EncodeError):
                check_base64_payload(bad)


if __name__ == "__main__":
    unittest.main()
