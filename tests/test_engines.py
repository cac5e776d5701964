from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from contracts.errors import OperationCancelled
from ocr import cli as ocr_cli
from ocr.artifacts import serialize_recognition_result
from ocr.cancellation import CancelToken
from ocr.contracts import BlockType, MathpixConfig, RecognitionResult
from ocr.engines import MathpixEngine, MockEngine, RecognitionEngine

from fakes import ClockedToken, FakeClock, FakeResponse, FakeSession, mathpix_config, status_reply, submitted


class TestMockEngine(unittest.TestCase):
    def test_satisfies_protocol(self) -> None:
        self.assertIsInstance(MockEngine(), RecognitionEngine)

    def test_extract_text_is_deterministic(self) -> None:
        engine = MockEngine()
        a = engine.extract_text(b"one")
        b = engine.extract_text(b"two")
        self.assertEqual(a.text, b.text)
        self.assertEqual(a.confidence, 0.85)
        self.assertEqual(a.engine, "mock")
        self.assertEqual(a.language, "eng")

    def test_process_pdf(self) -> None:
        result = MockEngine().process_pdf(b"%PDF-1.4")
        self.assertEqual(result.confidence, 0.80)
        self.assertEqual(result.processing_time_s, 0.1)
        self.assertTrue(result.text.startswith("# Mock PDF Conversion"))

    def test_structured_blocks_fit_layout(self) -> None:
        result = MockEngine(languages=("eng", "fra")).extract_structured_text(b"img", "typed")
        self.assertEqual(result.language, "eng,fra")
        self.assertEqual([b.block_type for b in result.blocks], [BlockType.TITLE, BlockType.PARAGRAPH])
        for block in result.blocks:
            self.assertTrue(block.bbox.within(result.layout.page_width, result.layout.page_height))
        self.assertEqual((result.layout.page_width, result.layout.page_height), (600, 800))

    def test_info_is_local(self) -> None:
        info = MockEngine().info()
        self.assertTrue(info.is_local)
        self.assertFalse(info.requires_auth)

    def test_honors_cancellation(self) -> None:
        token = CancelToken()
        token.cancel()
        with self.assertRaises(OperationCancelled):
            MockEngine().process_pdf(b"%PDF", cancel=token)


class TestMathpixEngine(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()

    def _engine(self, replies: list, **config) -> tuple[MathpixEngine, FakeSession]:
        session = FakeSession(self.clock, replies)
        engine = MathpixEngine(config=mathpix_config(**config), session=session, clock=self.clock)
        return engine, session

    def test_process_pdf_requests_markdown(self) -> None:
        engine, session = self._engine(
            [submitted(), status_reply("processing"), status_reply("completed"), FakeResponse(content=b"# Doc")],
            languages=("en", "de"),
        )

        result = engine.process_pdf(b"%PDF-1.4", cancel=ClockedToken(self.clock))

        self.assertEqual(result.text, "# Doc")
        self.assertEqual(result.engine, "mathpix")
        self.assertEqual(result.confidence, 0.95)
        self.assertEqual(result.language, "en,de")
        self.assertEqual(result.processing_time_s, 5.0)

        submit = session.calls[0]
        self.assertEqual(submit["files"]["file"][:1], ("document.pdf",))
        self.assertEqual(json.loads(submit["data"]["options_json"]), {"conversion_formats": {"md": True}})

    def test_extract_text_uploads_png_without_options(self) -> None:
        engine, session = self._engine([submitted(), status_reply("completed"), FakeResponse(content=b"x = 1")])

        result = engine.extract_text(b"\x89PNG", cancel=ClockedToken(self.clock))

        self.assertEqual(result.text, "x = 1")
        self.assertEqual(session.calls[0]["files"]["file"][0], "image.png")
        self.assertEqual(session.calls[0]["files"]["file"][2], "image/png")
        self.assertIsNone(session.calls[0]["data"])

    def test_structured_text_from_markdown(self) -> None:
        markdown = b"# Heading\n\n| a | b |\n|---|---|\n| 1 | 2 |\n\n$$x^2$$"
        engine, _ = self._engine([submitted(), status_reply("completed"), FakeResponse(content=markdown)])

        result = engine.extract_structured_text(b"\x89PNG", "math", cancel=ClockedToken(self.clock))

        self.assertEqual(result.blocks[0].block_type, BlockType.HEADING)
        self.assertTrue(result.layout.has_tables)
        self.assertTrue(result.layout.has_diagrams)
        self.assertEqual(len(result.tables), 1)
        self.assertEqual(len(result.tables[0].rows), 2)

    def test_info(self) -> None:
        engine = MathpixEngine(config=mathpix_config(), session=FakeSession(self.clock, []))
        info = engine.info()
        self.assertEqual(info.name, "Mathpix")
        self.assertFalse(info.is_local)
        self.assertTrue(info.requires_auth)
        self.assertIsInstance(engine, RecognitionEngine)


class TestRecognitionContracts(unittest.TestCase):
    def test_confidence_bounds(self) -> None:
        for bad in (-0.01, 1.01):
            with self.assertRaises(ValueError):
                RecognitionResult(text="", confidence=bad, language="en", engine="mock", processing_time_s=0.0)
        RecognitionResult(text="", confidence=0.0, language="en", engine="mock", processing_time_s=0.0)
        RecognitionResult(text="", confidence=1.0, language="en", engine="mock", processing_time_s=0.0)

    def test_mathpix_config_requires_credentials(self) -> None:
        with self.assertRaises(ValueError):
            MathpixConfig(app_id="", app_key="k")
        with self.assertRaises(ValueError):
            MathpixConfig(app_id="i", app_key="")

    def test_mathpix_config_defaults(self) -> None:
        cfg = mathpix_config()
        self.assertEqual(cfg.api_url, "https://api.mathpix.com/v3/pdf")
        self.assertEqual(cfg.poll_interval_s, 5.0)
        self.assertEqual(cfg.job_timeout_s, 300.0)
        self.assertFalse(cfg.strict_status)


class TestOcrCli(unittest.TestCase):
    def test_offline_structured_artifact(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            image = Path(tmp) / "page.png"
            image.write_bytes(b"\x89PNG fake")
            out = Path(tmp) / "out" / "ocr.json"

            code = ocr_cli.main(["--image", str(image), "--out", str(out), "--structured", "--offline"])

            self.assertEqual(code, 0)
            payload = json.loads(out.read_text(encoding="utf-8"))
        self.assertEqual(payload["engine"], "mock")
        self.assertEqual(payload["layout"]["page_width"], 600)
        self.assertEqual(len(payload["blocks"]), 2)

    def test_languages_flag(self) -> None:
        self.assertEqual(ocr_cli.parse_languages("en, fr,,de "), ("en", "fr", "de"))

    def test_credentials_resolve_from_flags(self) -> None:
        args = ocr_cli.build_arg_parser().parse_args(
            ["--image", "x.png", "--out", "o.json", "--mathpix-app-id", "i", "--mathpix-app-key", "k"]
        )
        with patch("ocr.cli.load_dotenv"):
            cfg = ocr_cli.mathpix_config_from_args(args)
        self.assertEqual((cfg.app_id, cfg.app_key, cfg.languages), ("i", "k", ("en",)))

    def test_serialized_result_is_stable(self) -> None:
        result = MockEngine().process_pdf(b"%PDF")
        self.assertEqual(serialize_recognition_result(result), serialize_recognition_result(result))
        self.assertTrue(serialize_recognition_result(result).endswith("}\n"))


if __name__ == "__main__":
    unittest.main()
