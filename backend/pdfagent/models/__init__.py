"""Data models for PDF Agent."""
from .document import Document, Page
from .chunk import Chunk, ScoredChunk, TextChunk
from .events import IndexEvent
from .api import ChatMessage, ChatRequest, ChatResponse, Source, StatusResponse

__all__ = [
    "Document",
    "Page",
    "Chunk",
    "ScoredChunk",
    "TextChunk",
    "IndexEvent",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "Source",
    "StatusResponse",
]
