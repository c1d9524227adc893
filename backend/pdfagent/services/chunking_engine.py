"""Chunking engine producing overlapping fixed-size character windows."""
import logging
from typing import List, Optional

from pdfagent.models.document import Document
from pdfagent.models.chunk import TextChunk
from pdfagent.config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """Segments documents into overlapping windows, one page at a time."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Window length in characters
            chunk_overlap: Characters shared by consecutive windows

        Raises:
            ValueError: If chunk_size is not positive or chunk_overlap is negative
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

        if chunk_overlap >= chunk_size:
            logger.warning(
                f"chunk_overlap ({chunk_overlap}) >= chunk_size ({chunk_size}); "
                f"windows will advance one character at a time"
            )

    @property
    def step(self) -> int:
        """Distance between consecutive window starts, never below 1."""
        return max(1, self.chunk_size - self.chunk_overlap)

    def chunk_text(self, text: str, page_number: Optional[int] = None) -> List[TextChunk]:
        """
        Slide a window over text.

        Every window is returned, including whitespace-only ones, so the
        windows always cover the whole input. The last window ends exactly
        at len(text) and may be shorter than chunk_size.

        Args:
            text: Text to split
            page_number: Page to attach to every window

        Returns:
            Ordered list of windows
        """
        chunks = []
        start = 0
        while start < len(text):
            chunks.append(TextChunk(text=text[start:start + self.chunk_size], page_number=page_number))
            start += self.step
        return chunks

    def chunk_document(self, document: Document) -> List[TextChunk]:
        """
        Chunk every page independently and drop blank windows.

        A document without pages is treated as a single page 1.

        Args:
            document: Extracted document

        Returns:
            Non-empty windows tagged with their page number, in page order
        """
        if document.pages:
            windows = []
            for page in document.pages:
                windows.extend(self.chunk_text(page.text, page.page_number))
        else:
            windows = self.chunk_text(document.text, 1)

        chunks = [chunk for chunk in windows if chunk.text.strip()]
        if len(chunks) < len(windows):
            logger.debug(f"Dropped {len(windows) - len(chunks)} blank windows from {document.filename}")

        logger.info(f"Created {len(chunks)} chunks from {document.filename}")
        return chunks
