from __future__ import annotations

import argparse
import sys
from pathlib import Path

from contracts.errors import DecodeError, EncodeError

from .artifacts import write_page_images, write_render_manifest_json
from .contracts import ColorMode
from .module import render_backend_info, render_pdf


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdfpacket-render",
        description="Render a PDF to per-page PNG images + JSON manifest.",
    )
    p.add_argument("--pdf", required=True, type=Path, help="Input PDF file.")
    p.add_argument("--out-dir", required=True, type=Path, help="Directory for page_###.png files.")
    p.add_argument(
        "--out-manifest",
        type=Path,
        default=None,
        help="Output manifest JSON file (default: <out-dir>/manifest.json).",
    )
    p.add_argument("--dpi", type=int, default=150, help="Render DPI.")
    p.add_argument(
        "--color-mode",
        choices=[m.value for m in ColorMode],
        default=ColorMode.RGB.value,
        help="Color mode for raster output.",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    if args.dpi <= 0:
        print("error: --dpi must be positive", file=sys.stderr)
        return 2

    pdf_bytes = args.pdf.read_bytes()
    color_mode = ColorMode(args.color_mode)
    try:
        pages = render_pdf(pdf_bytes, dpi=args.dpi, color_mode=color_mode)
    except (DecodeError, EncodeError) as e:
        print(f"error: {e.code}: {e.message}", file=sys.stderr)
        return 2

    write_page_images(pages=pages, out_dir=args.out_dir)
    write_render_manifest_json(
        pages=pages,
        rendering={
            "dpi": args.dpi,
            "color_mode": color_mode.value,
            "source_pdf": args.pdf.name,
            **render_backend_info(),
        },
        out_manifest=args.out_manifest or (args.out_dir / "manifest.json"),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
