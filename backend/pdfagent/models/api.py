"""Request and response models for the HTTP API."""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A prior conversation turn sent back by the client."""
    role: str  # "user" or "assistant"
    text: str


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""
    message: str = ""
    history: List[ChatMessage] = Field(default_factory=list)
    provider: Optional[str] = None
    ollama_url: Optional[str] = None
    chat_model: Optional[str] = None
    embedding_provider: Optional[str] = None
    embedding_model: Optional[str] = None
    top_k: Optional[int] = Field(default=None, ge=1)


class Source(BaseModel):
    """A retrieved chunk that was injected into the prompt."""
    chunk_index: int
    page: Optional[int] = None
    score: float


class ChatResponse(BaseModel):
    """Body returned by POST /api/chat."""
    reply: str
    sources: List[Source] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StatusResponse(BaseModel):
    """Body returned by GET /api/status."""
    document: Optional[str] = None
    chunks: int
    vector_store: str
