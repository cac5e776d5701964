"""
Heuristic markdown -> text block / table / layout conversion.

The remote engine returns markdown only, so positions are synthetic: one
block per non-empty line laid out top to bottom on a virtual page.
"""

from __future__ import annotations

from dataclasses import dataclass

from .contracts import BBox, BlockType, LayoutInfo, Orientation, Table, TableCell, TableRow, TextBlock

DEFAULT_PAGE_WIDTH = 800
DEFAULT_PAGE_HEIGHT = 1000

BLOCK_HEIGHT = 20
LINE_PITCH = 25
BLANK_LINE_GAP = 20
CHAR_WIDTH = 8
BLOCK_CONFIDENCE = 0.95


@dataclass(frozen=True, slots=True)
class ParsedMarkdown:
    blocks: list[TextBlock]
    tables: list[Table]
    layout: LayoutInfo


def classify_line(line: str) -> BlockType:
    if line.startswith("#"):
        return BlockType.HEADING
    if line.startswith("|") and line.endswith("|"):
        return BlockType.TABLE_ROW
    if line.startswith("$$") or line.endswith("$$"):
        return BlockType.MATH
    return BlockType.PARAGRAPH


def is_table_separator(line: str) -> bool:
    """
    True for markdown header separator rows such as `|---|:--:|`.
    """

    inner = line.strip().strip("|")
    return "-" in inner and set(inner) <= set("-:| ")


def split_table_cells(line: str) -> list[str]:
    return [c.strip() for c in line.strip().strip("|").split("|")]


def _build_table(rows: list[TextBlock], *, confidence: float) -> Table:
    table_rows: list[TableRow] = []
    for block in rows:
        cells = split_table_cells(block.text)
        cell_width = block.bbox.width // len(cells)
        table_rows.append(
            TableRow(
                cells=[
                    TableCell(
                        text=text,
                        bbox=BBox(
                            x=block.bbox.x + i * cell_width,
                            y=block.bbox.y,
                            width=cell_width,
                            height=block.bbox.height,
                        ),
                    )
                    for i, text in enumerate(cells)
                ]
            )
        )

    top = rows[0].bbox.y
    bottom = rows[-1].bbox.y + rows[-1].bbox.height
    return Table(
        rows=table_rows,
        bbox=BBox(x=0, y=top, width=max(b.bbox.width for b in rows), height=bottom - top),
        confidence=confidence,
    )


def parse_markdown(
    markdown: str,
    *,
    page_width: int = DEFAULT_PAGE_WIDTH,
    confidence: float = BLOCK_CONFIDENCE,
) -> ParsedMarkdown:
    blocks: list[TextBlock] = []
    tables: list[Table] = []
    pending_rows: list[TextBlock] = []

    def flush_table() -> None:
        if pending_rows:
            tables.append(_build_table(pending_rows, confidence=confidence))
            pending_rows.clear()

    y = 0
    for raw in markdown.split("\n"):
        line = raw.strip()
        if line == "":
            flush_table()
            y += BLANK_LINE_GAP
            continue

        block_type = classify_line(line)
        block = TextBlock(
            text=line,
            confidence=confidence,
            bbox=BBox(x=0, y=y, width=min(len(line) * CHAR_WIDTH, page_width), height=BLOCK_HEIGHT),
            block_type=block_type,
        )
        blocks.append(block)

        if block_type == BlockType.TABLE_ROW:
            if not is_table_separator(line):
                pending_rows.append(block)
        else:
            flush_table()

        y += LINE_PITCH
    flush_table()

    # Long documents grow the virtual page so every block stays on it.
    content_bottom = max((b.bbox.y + b.bbox.height for b in blocks), default=0)
    page_height = max(DEFAULT_PAGE_HEIGHT, content_bottom)

    layout = LayoutInfo(
        page_width=page_width,
        page_height=page_height,
        orientation=Orientation.PORTRAIT if page_height >= page_width else Orientation.LANDSCAPE,
        column_count=1,
        has_tables=any(b.block_type == BlockType.TABLE_ROW for b in blocks),
        has_diagrams="$$" in markdown,
    )
    return ParsedMarkdown(blocks=blocks, tables=tables, layout=layout)
