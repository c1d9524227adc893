"""Document loading service for PDF text extraction."""
import logging
from pathlib import Path
from typing import Union
import fitz  # PyMuPDF

from pdfagent.models.document import Document, Page
from pdfagent.services.errors import InputError

logger = logging.getLogger(__name__)


class DocumentLoader:
    """Extracts page-by-page text from PDF bytes or files.

    Plain-text files (.txt) are accepted too and produce a document with no
    page boundaries, which the chunker treats as a single page 1.
    """

    def load_bytes(self, data: bytes, filename: str) -> Document:
        """
        Extract text from an in-memory PDF or plain-text file.

        Args:
            data: Raw PDF bytes
            filename: Original name of the uploaded file

        Returns:
            Document object with one Page per PDF page

        Raises:
            InputError: If the data is empty or not a readable PDF
        """
        if Path(filename).suffix.lower() == ".txt":
            return self.load_text(data, filename)

        if not data:
            raise InputError("Uploaded file is empty", details={"filename": filename})

        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {str(e)}")
            raise InputError(
                f"Could not read {filename} as a PDF: {str(e)}",
                details={"filename": filename}
            )

        try:
            pages = []
            for page_num in range(len(pdf_document)):
                text = pdf_document[page_num].get_text()
                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text,
                    word_count=len(text.split())
                ))
        finally:
            pdf_document.close()

        logger.info(f"Loaded {filename}: {len(pages)} pages")
        return Document(filename=filename, pages=pages, total_pages=len(pages))

    def load_text(self, data: bytes, filename: str) -> Document:
        """
        Wrap a plain-text file as a document without page boundaries.

        Raises:
            InputError: If the data is empty or not UTF-8
        """
        if not data:
            raise InputError("Uploaded file is empty", details={"filename": filename})

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InputError(
                f"Could not read {filename} as UTF-8 text: {str(e)}",
                details={"filename": filename}
            )

        logger.info(f"Loaded {filename}: {len(text)} characters of plain text")
        return Document(filename=filename, pages=[], total_pages=0, raw_text=text)

    def load_file(self, path: Union[str, Path]) -> Document:
        """
        Extract text from a PDF on disk.

        Args:
            path: Path to the PDF file

        Returns:
            Document object with extracted text

        Raises:
            InputError: If the file does not exist or is not a readable PDF
        """
        path = Path(path)
        if not path.is_file():
            raise InputError(f"File not found: {path}", details={"path": str(path)})

        return self.load_bytes(path.read_bytes(), path.name)
