"""Utilities for extracting text from PDF CVs."""

from __future__ import annotations

import re
from pathlib import Path

import pymupdf4llm
import structlog

from .errors import CollaboratorError, NotFoundError

_BLANK_RUN_RE = re.compile(r"\n{3,}")


def extract_text(file_ref: str | Path) -> str:
    """Return markdown text extracted from a PDF CV.

    Parameters
    ----------
    file_ref:
        Path to the source PDF file.

    Runs of blank lines are collapsed; a missing file raises ``NotFoundError``.
    """

    pdf_path = Path(file_ref)
    if not pdf_path.exists():
        raise NotFoundError(f"CV file not found: {pdf_path}")

    try:
        markdown = pymupdf4llm.to_markdown(str(pdf_path))
    except Exception as exc:  # noqa: BLE001
        structlog.get_logger(__name__).error("cv.extraction_failed", path=str(pdf_path), error=str(exc))
        raise CollaboratorError("text_extractor", f"Could not read {pdf_path.name}") from exc

    lines = [line.rstrip() for line in markdown.splitlines()]
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()


class PdfTextExtractor:
    """Text extractor resolving CV references relative to an optional base directory."""

    def __init__(self, base_path: str | Path | None = None):
        self._base_path = Path(base_path) if base_path else None

    def extract_text(self, file_ref: str) -> str:
        path = Path(file_ref)
        if self._base_path is not None and not path.is_absolute():
            path = self._base_path / path
        return extract_text(path)


__all__ = ["PdfTextExtractor", "extract_text"]
