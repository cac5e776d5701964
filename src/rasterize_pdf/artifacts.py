from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .contracts import PageImage


def page_image_filename(page_num: int) -> str:
    return f"page_{page_num:03d}.png"


def write_page_images(*, pages: tuple[PageImage, ...], out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for page in pages:
        out_file = out_dir / page_image_filename(page.page_num)
        out_file.write_bytes(page.png_bytes)
        written.append(out_file)
    return written


def serialize_render_manifest(*, pages: tuple[PageImage, ...], rendering: dict[str, Any]) -> str:
    payload: dict[str, Any] = {
        "rendering": rendering,
        "pages": [{**p.to_dict(), "image_file": page_image_filename(p.page_num)} for p in pages],
    }
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_render_manifest_json(*, pages: tuple[PageImage, ...], rendering: dict[str, Any], out_manifest: Path) -> None:
    out_manifest.parent.mkdir(parents=True, exist_ok=True)
    out_manifest.write_text(serialize_render_manifest(pages=pages, rendering=rendering), encoding="utf-8")
