"""Document data models."""
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Page:
    """Represents a single page from a document."""
    page_number: int
    text: str
    word_count: int


@dataclass
class Document:
    """Represents an extracted PDF document."""
    filename: str
    pages: List[Page]
    total_pages: int
    raw_text: Optional[str] = None  # Set by extractors that cannot split pages

    @property
    def text(self) -> str:
        """Full document text."""
        if not self.pages:
            return self.raw_text or ""
        return "\n".join(page.text for page in self.pages)
