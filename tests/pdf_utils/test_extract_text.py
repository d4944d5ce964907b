from __future__ import annotations

from pathlib import Path

import pytest

import admissions.pdf_utils as pdf_utils
from admissions.errors import CollaboratorError, NotFoundError


class DummyPDF:
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.paths: list[str] = []

    def to_markdown(self, path: str) -> str:
        self.paths.append(path)
        if self._error is not None:
            raise self._error
        return self._text


def test_extract_text_collapses_blank_runs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    pdf_file = tmp_path / "cv.pdf"
    pdf_file.write_bytes(b"%PDF-1.7")
    dummy = DummyPDF("# Ana Torres   \n\n\n\n- Python\n- ROS\n\n")
    monkeypatch.setattr(pdf_utils, "pymupdf4llm", dummy)

    text = pdf_utils.extract_text(pdf_file)

    assert text == "# Ana Torres\n\n- Python\n- ROS"
    assert dummy.paths == [str(pdf_file)]


def test_missing_file_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        pdf_utils.extract_text(tmp_path / "missing.pdf")


def test_unreadable_pdf_is_collaborator_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    pdf_file = tmp_path / "broken.pdf"
    pdf_file.write_bytes(b"garbage")
    monkeypatch.setattr(pdf_utils, "pymupdf4llm", DummyPDF(error=RuntimeError("cannot open")))

    with pytest.raises(CollaboratorError):
        pdf_utils.extract_text(pdf_file)


def test_extractor_resolves_relative_references(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "uploads").mkdir()
    pdf_file = tmp_path / "uploads" / "cv.pdf"
    pdf_file.write_bytes(b"%PDF-1.7")
    monkeypatch.setattr(pdf_utils, "pymupdf4llm", DummyPDF("Robotics"))

    extractor = pdf_utils.PdfTextExtractor(tmp_path)

    assert extractor.extract_text("uploads/cv.pdf") == "Robotics"
    with pytest.raises(NotFoundError):
        extractor.extract_text("uploads/other.pdf")
