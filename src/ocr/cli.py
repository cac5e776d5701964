from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from contracts.errors import PdfPacketError

from .artifacts import write_recognition_json_artifact
from .contracts import MathpixConfig
from .registry import EngineRegistry, build_default_registry

ENV_MATHPIX_APP_ID = "MATHPIX_APP_ID"
ENV_MATHPIX_APP_KEY = "MATHPIX_APP_KEY"


def parse_languages(raw: str) -> tuple[str, ...]:
    return tuple(lang.strip() for lang in raw.split(",") if lang.strip())


def add_engine_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--mathpix-app-id",
        default=None,
        help=f"Mathpix application id (default: ${ENV_MATHPIX_APP_ID}).",
    )
    p.add_argument(
        "--mathpix-app-key",
        default=None,
        help=f"Mathpix application key (default: ${ENV_MATHPIX_APP_KEY}).",
    )
    p.add_argument(
        "--ocr-languages",
        default="en",
        help="Comma-separated recognition languages (e.g. en,fr,de).",
    )
    p.add_argument(
        "--offline",
        action="store_true",
        help="Do not register the remote engine even if credentials are present.",
    )


def mathpix_config_from_args(args: argparse.Namespace) -> MathpixConfig | None:
    """
    Resolve Mathpix credentials: flags first, then the environment (and a
    `.env` file). Returns None when offline or unconfigured.
    """

    if args.offline:
        return None
    load_dotenv()
    app_id = args.mathpix_app_id or os.environ.get(ENV_MATHPIX_APP_ID, "")
    app_key = args.mathpix_app_key or os.environ.get(ENV_MATHPIX_APP_KEY, "")
    if not app_id or not app_key:
        return None
    languages = parse_languages(args.ocr_languages) or ("en",)
    return MathpixConfig(app_id=app_id, app_key=app_key, languages=languages)


def registry_from_args(args: argparse.Namespace) -> EngineRegistry:
    return build_default_registry(mathpix_config=mathpix_config_from_args(args))


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdfpacket-ocr",
        description="Recognize text in a single image with the best available engine; emit JSON.",
    )
    p.add_argument("--image", required=True, type=Path, help="Input image file.")
    p.add_argument("--out", required=True, type=Path, help="Output JSON artifact file path.")
    p.add_argument(
        "--structured",
        action="store_true",
        help="Run block/table/layout detection instead of plain text extraction.",
    )
    p.add_argument(
        "--document-type",
        default="",
        help="Advisory document type hint (e.g. typed, handwritten, math).",
    )
    add_engine_arguments(p)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    registry = registry_from_args(args)
    image_bytes = args.image.read_bytes()

    try:
        if args.structured:
            result = registry.extract_structured_text_with_best_engine(image_bytes, args.document_type)
        else:
            result = registry.extract_text_with_best_engine(image_bytes, args.document_type)
    except PdfPacketError as e:
        print(f"error: {e.code}: {e.message}", file=sys.stderr)
        return 2

    write_recognition_json_artifact(result=result, out_file=args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
