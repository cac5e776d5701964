from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from contracts.errors import PdfPacketError
from ocr.cancellation import CancelToken
from ocr.cli import add_engine_arguments, registry_from_args

from .artifacts import build_error_response, build_tool_response, write_tool_response_json
from .contracts import ConversionConfig
from .document_source import DEFAULT_MAX_FILES, LocalPdfSource
from .logging_config import configure_logging
from .module import convert_document

LOGGER = logging.getLogger(__name__)

ENV_DATA_ROOT = "PDF_PACKET_DATA_ROOT"


def _data_root(args: argparse.Namespace) -> Path:
    if args.data_root is not None:
        return args.data_root
    load_dotenv()
    raw = os.environ.get(ENV_DATA_ROOT, "")
    if not raw:
        raise SystemExit(f"error: --data-root is required (or set ${ENV_DATA_ROOT})")
    return Path(raw)


def _add_data_root_argument(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help=f"Directory holding the PDFs (default: ${ENV_DATA_ROOT}).",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdfpacket-convert",
        description="Convert a PDF into recognized text plus per-page PNG images.",
    )
    p.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    p.add_argument("--log-file", type=Path, default=None, help="Append logs to this file instead of stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    conv = sub.add_parser("convert", help="Convert one document and write the JSON tool response.")
    _add_data_root_argument(conv)
    conv.add_argument("--document-id", required=True, help="PDF path relative to the data root.")
    conv.add_argument("--out", required=True, type=Path, help="Output JSON tool-response file.")
    conv.add_argument("--dpi", type=float, default=None, help="Render DPI (default: 150).")
    conv.add_argument(
        "--engine",
        default=ConversionConfig().engine_name,
        help="Registered recognition engine to use (default: mathpix).",
    )
    conv.add_argument(
        "--timeout-s",
        type=float,
        default=None,
        help="Overall deadline for the conversion, in seconds.",
    )
    add_engine_arguments(conv)

    search = sub.add_parser("search", help="List PDFs whose file name contains a query.")
    _add_data_root_argument(search)
    search.add_argument("--query", default="", help="Case-insensitive file name substring.")
    search.add_argument("--max-files", type=int, default=DEFAULT_MAX_FILES, help="Maximum results.")

    engines = sub.add_parser("engines", help="Print information about the registered engines.")
    add_engine_arguments(engines)
    return p


def _run_convert(args: argparse.Namespace) -> int:
    source = LocalPdfSource(_data_root(args))
    registry = registry_from_args(args)
    config = ConversionConfig(dpi=args.dpi, engine_name=args.engine)
    cancel = CancelToken(deadline_s=args.timeout_s)

    try:
        result = convert_document(
            document_id=args.document_id,
            source=source,
            registry=registry,
            config=config,
            cancel=cancel,
        )
        response = build_tool_response(result)
    except PdfPacketError as e:
        LOGGER.error("Conversion of %s failed: %s: %s", args.document_id, e.code, e.message)
        write_tool_response_json(response=build_error_response(e), out_file=args.out)
        return 2

    write_tool_response_json(response=response, out_file=args.out)
    return 0


def _run_search(args: argparse.Namespace) -> int:
    source = LocalPdfSource(_data_root(args))
    infos = source.search(args.query, max_files=args.max_files)
    print(json.dumps([i.to_dict() for i in infos], ensure_ascii=False, sort_keys=True, indent=2))
    return 0


def _run_engines(args: argparse.Namespace) -> int:
    registry = registry_from_args(args)
    payload = {
        "default": registry.default_name,
        "suggested": registry.suggest(),
        "engines": {name: info.to_dict() for name, info in registry.list_engines().items()},
    }
    print(json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    try:
        configure_logging(args.log_level, args.log_file)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.command == "convert":
        return _run_convert(args)
    if args.command == "search":
        return _run_search(args)
    return _run_engines(args)


if __name__ == "__main__":
    raise SystemExit(main())
