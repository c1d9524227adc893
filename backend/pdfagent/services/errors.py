"""Error types shared by the PDF Agent services."""
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ErrorInfo:
    """Structured error description surfaced to API callers."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class PDFAgentError(Exception):
    """Base exception carrying structured error information."""

    default_code = "PDF_AGENT_ERROR"

    def __init__(self, message: str, code: str = None, details: Dict[str, Any] = None):
        self.error = ErrorInfo(
            code=code or self.default_code,
            message=message,
            details=details or {}
        )
        super().__init__(message)


class InputError(PDFAgentError):
    """Missing file, missing provider/model configuration or empty message."""

    default_code = "INPUT_ERROR"


class ProviderError(PDFAgentError):
    """An embedding or chat provider was unreachable or answered badly."""

    default_code = "PROVIDER_ERROR"


class EmbeddingProviderError(ProviderError):
    """The embedding provider failed to return a vector."""

    default_code = "EMBEDDING_PROVIDER_ERROR"


class ChatProviderError(ProviderError):
    """The chat provider failed to return a reply."""

    default_code = "CHAT_PROVIDER_ERROR"
