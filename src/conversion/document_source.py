from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from contracts.errors import NotFoundError

from .contracts import DocumentInfo
from .data_access import DataAccessError, resolve_under_data_root

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 10


class DocumentSource(Protocol):
    """
    Boundary to the document store that owns the raw PDFs.
    """

    def fetch(self, document_id: str) -> bytes: ...

    def search(self, query: str, *, max_files: int = DEFAULT_MAX_FILES) -> list[DocumentInfo]: ...


class LocalPdfSource:
    """
    Document source backed by a directory of PDFs.

    Document ids are PDF paths relative to `data_root` (posix separators).
    """

    def __init__(self, data_root: Path) -> None:
        if not isinstance(data_root, Path):
            raise TypeError("data_root must be a pathlib.Path")
        self._root = data_root.expanduser().resolve()

    def _resolve(self, document_id: str) -> Path:
        if not document_id.lower().endswith(".pdf"):
            raise NotFoundError(
                "Document id does not name a PDF",
                code="DOCUMENT_NOT_PDF",
                detail={"document_id": document_id},
            )
        try:
            pdf_file = resolve_under_data_root(data_root=self._root, relpath=document_id)
        except DataAccessError as e:
            raise NotFoundError(str(e), code="DOCUMENT_ID_INVALID", detail={"document_id": document_id}) from e
        if not pdf_file.is_file():
            raise NotFoundError(
                "Document not found",
                code="DOCUMENT_NOT_FOUND",
                detail={"document_id": document_id},
            )
        return pdf_file

    def fetch(self, document_id: str) -> bytes:
        pdf_file = self._resolve(document_id)
        data = pdf_file.read_bytes()
        LOGGER.debug("Fetched document %s (%d bytes)", document_id, len(data))
        return data

    def _is_under_root(self, pdf_file: Path) -> bool:
        try:
            resolve_under_data_root(data_root=self._root, relpath=pdf_file.relative_to(self._root).as_posix())
        except DataAccessError:
            LOGGER.debug("Skipping %s: resolves outside the data root", pdf_file)
            return False
        return True

    def _info(self, pdf_file: Path) -> DocumentInfo:
        stat = pdf_file.stat()
        return DocumentInfo(
            id=pdf_file.relative_to(self._root).as_posix(),
            name=pdf_file.name,
            size=stat.st_size,
            modified_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        )

    def search(self, query: str, *, max_files: int = DEFAULT_MAX_FILES) -> list[DocumentInfo]:
        """
        Case-insensitive substring match on file names, ordered by id.
        """

        if max_files <= 0:
            max_files = DEFAULT_MAX_FILES
        needle = query.strip().lower()

        matches = sorted(
            p
            for p in self._root.rglob("*")
            if p.is_file()
            and p.suffix.lower() == ".pdf"
            and needle in p.name.lower()
            and self._is_under_root(p)
        )
        return [self._info(p) for p in matches[:max_files]]
