from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


MATHPIX_PDF_API_URL = "https://api.mathpix.com/v3/pdf"


class OcrEngineName(str, Enum):
    """
    Registry keys of the recognition engines shipped with this package.
    """

    MATHPIX = "mathpix"
    MOCK = "mock"


class BlockType(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    TABLE_ROW = "table_row"
    MATH = "math"
    TITLE = "title"
    LINE = "line"
    WORD = "word"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


def _check_confidence(value: float, *, what: str) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{what} confidence must be within [0.0, 1.0], got {value!r}")


@dataclass(frozen=True, slots=True)
class BBox:
    """
    Absolute pixel box: (x, y) is the top-left corner.
    """

    x: int
    y: int
    width: int
    height: int

    def within(self, page_width: int, page_height: int) -> bool:
        """
        True iff the box lies entirely inside a page_width x page_height page.
        """

        if self.x < 0 or self.y < 0 or self.width < 0 or self.height < 0:
            return False
        return self.x + self.width <= page_width and self.y + self.height <= page_height


@dataclass(frozen=True, slots=True)
class TextBlock:
    text: str
    confidence: float
    bbox: BBox
    block_type: BlockType


@dataclass(frozen=True, slots=True)
class TableCell:
    text: str
    bbox: BBox
    column_span: int = 1
    row_span: int = 1


@dataclass(frozen=True, slots=True)
class TableRow:
    cells: list[TableCell]


@dataclass(frozen=True, slots=True)
class Table:
    rows: list[TableRow]
    bbox: BBox
    confidence: float


@dataclass(frozen=True, slots=True)
class LayoutInfo:
    page_width: int
    page_height: int
    orientation: Orientation
    column_count: int = 1
    has_tables: bool = False
    has_diagrams: bool = False


@dataclass(frozen=True, slots=True)
class RecognitionResult:
    """
    Plain-text recognition output of a single engine call.
    """

    text: str
    confidence: float
    language: str
    engine: str
    processing_time_s: float

    def __post_init__(self) -> None:
        _check_confidence(self.confidence, what="result")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StructuredRecognitionResult:
    """
    Recognition output with block, table and layout detection.

    Every block box must lie within the page described by `layout`.
    """

    text: str
    confidence: float
    language: str
    engine: str
    processing_time_s: float
    blocks: list[TextBlock]
    layout: LayoutInfo
    tables: list[Table] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_confidence(self.confidence, what="result")
        for i, block in enumerate(self.blocks):
            _check_confidence(block.confidence, what=f"block {i}")
            if not block.bbox.within(self.layout.page_width, self.layout.page_height):
                raise ValueError(
                    f"block {i} bbox {block.bbox} lies outside the "
                    f"{self.layout.page_width}x{self.layout.page_height} page"
                )

    @classmethod
    def from_result(
        cls,
        result: RecognitionResult,
        *,
        blocks: list[TextBlock],
        layout: LayoutInfo,
        tables: list[Table] | None = None,
    ) -> StructuredRecognitionResult:
        return cls(
            text=result.text,
            confidence=result.confidence,
            language=result.language,
            engine=result.engine,
            processing_time_s=result.processing_time_s,
            blocks=blocks,
            layout=layout,
            tables=list(tables or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class EngineInfo:
    name: str
    version: str
    supported_languages: tuple[str, ...]
    features: tuple[str, ...]
    is_local: bool
    requires_auth: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class MathpixConfig:
    """
    Remote recognition service configuration.

    Credentials are passed in explicitly; this module never reads the
    environment (see `ocr.cli`).
    """

    app_id: str
    app_key: str
    languages: tuple[str, ...] = ("en",)
    api_url: str = MATHPIX_PDF_API_URL
    poll_interval_s: float = 5.0
    job_timeout_s: float = 300.0
    request_timeout_s: float = 60.0
    # False: unknown poll statuses are logged and treated as "processing".
    strict_status: bool = False

    def __post_init__(self) -> None:
        if not self.app_id or not self.app_key:
            raise ValueError("Mathpix credentials (app_id, app_key) are required")
        if not self.languages:
            raise ValueError("languages must not be empty")
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        if self.job_timeout_s <= 0:
            raise ValueError("job_timeout_s must be > 0")
        if self.request_timeout_s <= 0:
            raise ValueError("request_timeout_s must be > 0")
