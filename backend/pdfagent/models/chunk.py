"""Chunk data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class TextChunk:
    """A window of text produced by the chunker, not yet embedded."""
    text: str
    page_number: Optional[int] = None


@dataclass
class Chunk:
    """Represents an embedded document chunk held by the vector store."""
    source_id: str  # Filename of the indexed document
    index: int  # 0-based position within one indexing run
    text: str
    page_number: Optional[int] = None
    embedding: List[float] = field(default_factory=list)


@dataclass
class ScoredChunk:
    """Chunk with cosine similarity score from retrieval."""
    chunk: Chunk
    score: float  # -1.0 to 1.0
