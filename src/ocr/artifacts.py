from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .contracts import RecognitionResult, StructuredRecognitionResult


def serialize_recognition_result(result: RecognitionResult | StructuredRecognitionResult) -> str:
    """
    Stable JSON serialization for audit artifacts.
    """

    payload: dict[str, Any] = result.to_dict()
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_recognition_json_artifact(
    *, result: RecognitionResult | StructuredRecognitionResult, out_file: Path
) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_recognition_result(result), encoding="utf-8")
