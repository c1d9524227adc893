"""Unit tests for DocumentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
import fitz  # PyMuPDF
from pdfagent.services.document_loader import DocumentLoader
from pdfagent.services.errors import InputError


def _pdf_bytes(*page_texts):
    """Build an in-memory PDF with one page per text (empty text = blank page)."""
    pdf = fitz.open()
    for text in page_texts:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = pdf.tobytes()
    pdf.close()
    return data


class TestDocumentLoader:
    """Test suite for DocumentLoader."""

    def test_load_bytes_pages(self):
        """Test text is extracted page by page with 1-based numbers."""
        document = DocumentLoader().load_bytes(_pdf_bytes("Hello first page", "Second page here"), "two.pdf")

        assert document.filename == "two.pdf"
        assert document.total_pages == 2
        assert [p.page_number for p in document.pages] == [1, 2]
        assert "Hello first page" in document.pages[0].text
        assert "Second page here" in document.pages[1].text
        assert document.pages[0].word_count == 3
        assert "Second page here" in document.text

    def test_blank_pdf_has_no_text(self):
        """Test a PDF without text yields blank pages, not an error."""
        document = DocumentLoader().load_bytes(_pdf_bytes(""), "scan.pdf")

        assert document.total_pages == 1
        assert document.text.strip() == ""

    def test_empty_bytes(self):
        """Test an empty upload is an input error."""
        with pytest.raises(InputError, match="empty"):
            DocumentLoader().load_bytes(b"", "empty.pdf")

    def test_not_a_pdf(self):
        """Test garbage bytes are an input error naming the file."""
        with pytest.raises(InputError, match="notes.pdf"):
            DocumentLoader().load_bytes(b"this is not a pdf at all", "notes.pdf")

    def test_load_file(self, tmp_path):
        """Test loading from disk uses the file name."""
        path = tmp_path / "manual.pdf"
        path.write_bytes(_pdf_bytes("Installation guide"))

        document = DocumentLoader().load_file(path)

        assert document.filename == "manual.pdf"
        assert "Installation guide" in document.pages[0].text

    def test_load_missing_file(self, tmp_path):
        """Test a missing path is an input error."""
        with pytest.raises(InputError, match="File not found"):
            DocumentLoader().load_file(tmp_path / "missing.pdf")

    def test_plain_text_has_no_pages(self):
        """Test a .txt upload keeps its text without page boundaries."""
        document = DocumentLoader().load_bytes("Release notes\nVersion 2".encode("utf-8"), "notes.TXT")

        assert document.filename == "notes.TXT"
        assert document.pages == []
        assert document.total_pages == 0
        assert document.text == "Release notes\nVersion 2"

    def test_plain_text_must_be_utf8(self):
        """Test undecodable text is an input error."""
        with pytest.raises(InputError, match="UTF-8"):
            DocumentLoader().load_bytes(b"\xff\xfe\xfa", "notes.txt")

    def test_empty_plain_text(self):
        """Test an empty text file is an input error."""
        with pytest.raises(InputError, match="empty"):
            DocumentLoader().load_bytes(b"", "notes.txt")
