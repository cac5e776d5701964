from __future__ import annotations

import logging
from typing import Iterable, Mapping

import requests

from contracts.errors import EngineUnavailableError, NotFoundError

from .cancellation import CancelToken
from .contracts import EngineInfo, MathpixConfig, OcrEngineName, RecognitionResult, StructuredRecognitionResult
from .engines import MathpixEngine, MockEngine, RecognitionEngine

LOGGER = logging.getLogger(__name__)


class EngineRegistry:
    """
    Named recognition engines plus one default.

    Lifecycle: created empty, populated during initialization, then frozen.
    A frozen registry is read-only and safe to share across concurrent
    conversions without locking.
    """

    def __init__(self) -> None:
        self._engines: dict[str, RecognitionEngine] = {}
        self._default: str | None = None
        self._frozen = False

    def _require_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("EngineRegistry is read-only after initialization")

    def _not_found(self, name: str | None) -> NotFoundError:
        return NotFoundError(
            f"Engine {name!r} is not registered",
            code="ENGINE_NOT_REGISTERED",
            detail={"name": name, "registered": self.names()},
        )

    def register(self, name: str, engine: RecognitionEngine) -> None:
        self._require_mutable()
        if not name:
            raise ValueError("engine name must be a non-empty string")
        self._engines[name] = engine
        if self._default is None:
            self._default = name
        LOGGER.debug("Registered recognition engine %r", name)

    def set_default(self, name: str) -> None:
        self._require_mutable()
        if name not in self._engines:
            raise self._not_found(name)
        self._default = name

    def freeze(self) -> EngineRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def default_name(self) -> str | None:
        return self._default

    def get(self, name: str = "") -> RecognitionEngine:
        """
        Look up an engine; the empty name resolves to the default.
        """

        resolved = name or self._default
        if resolved is None or resolved not in self._engines:
            raise self._not_found(resolved)
        return self._engines[resolved]

    def names(self) -> list[str]:
        return sorted(self._engines)

    def list_engines(self) -> dict[str, EngineInfo]:
        return {name: self._engines[name].info() for name in self.names()}

    def suggest(self, document_type: str = "", size_hint: int = 0) -> str:
        """
        Recommend an engine name. Total: never raises, always returns a name.

        Remote engines are preferred over local ones regardless of the
        document type or size; among several remote engines, "mathpix" wins,
        then the lexicographically smallest name, so the answer does not
        depend on registration order.
        """

        remote = sorted(name for name, engine in self._engines.items() if not engine.info().is_local)
        if remote:
            return OcrEngineName.MATHPIX.value if OcrEngineName.MATHPIX.value in remote else remote[0]
        if self._default is not None:
            return self._default
        if self._engines:
            return min(self._engines)
        return OcrEngineName.MOCK.value

    def _best_engine(self, document_type: str, size_hint: int) -> tuple[str, RecognitionEngine]:
        name = self.suggest(document_type, size_hint)
        try:
            return name, self.get(name)
        except NotFoundError as e:
            raise EngineUnavailableError(
                "No recognition engine is registered", detail={"suggested": name}
            ) from e

    def extract_text_with_best_engine(
        self, image_bytes: bytes, document_type: str, *, cancel: CancelToken | None = None
    ) -> RecognitionResult:
        name, engine = self._best_engine(document_type, len(image_bytes))
        LOGGER.info(
            "Using OCR engine %s (document_type=%r, image_size=%d)", name, document_type, len(image_bytes)
        )
        return engine.extract_text(image_bytes, cancel=cancel)

    def extract_structured_text_with_best_engine(
        self, image_bytes: bytes, document_type: str, *, cancel: CancelToken | None = None
    ) -> StructuredRecognitionResult:
        name, engine = self._best_engine(document_type, len(image_bytes))
        LOGGER.info(
            "Using OCR engine %s for structured extraction (document_type=%r, image_size=%d)",
            name,
            document_type,
            len(image_bytes),
        )
        return engine.extract_structured_text(image_bytes, document_type, cancel=cancel)


def build_registry(
    *,
    engines: Mapping[str, RecognitionEngine] | Iterable[tuple[str, RecognitionEngine]],
    default: str | None = None,
) -> EngineRegistry:
    """
    Populate and freeze a registry in one step.
    """

    registry = EngineRegistry()
    items = engines.items() if isinstance(engines, Mapping) else engines
    for name, engine in items:
        registry.register(name, engine)
    if default is not None:
        registry.set_default(default)
    return registry.freeze()


def build_default_registry(
    *,
    mathpix_config: MathpixConfig | None = None,
    mock_languages: tuple[str, ...] = ("eng",),
    session: requests.Session | None = None,
) -> EngineRegistry:
    """
    Standard process registry: Mathpix (when configured, and then default)
    plus the local mock engine as offline fallback.
    """

    engines: list[tuple[str, RecognitionEngine]] = []
    if mathpix_config is not None:
        engines.append((OcrEngineName.MATHPIX.value, MathpixEngine(config=mathpix_config, session=session)))
    engines.append((OcrEngineName.MOCK.value, MockEngine(languages=mock_languages)))
    return build_registry(engines=engines)
