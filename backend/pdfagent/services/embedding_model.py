"""Embedding providers: local Ollama and the Hugging Face Inference API."""
import time
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional
import httpx

from pdfagent.config import (
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    HUGGINGFACE_API_KEY,
    OLLAMA_URL,
    REQUEST_TIMEOUT,
)
from pdfagent.services.errors import EmbeddingProviderError, InputError

logger = logging.getLogger(__name__)


class EmbeddingModel(ABC):
    """Maps one text string to a fixed-length vector through a remote provider."""

    provider_name = "base"

    def __init__(self, model_name: str, timeout: float = REQUEST_TIMEOUT):
        self.model_name = model_name
        self.timeout = timeout

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingProviderError: If the provider call fails or returns garbage
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        start_time = time.time()
        try:
            response = self._post(text)
        except httpx.TimeoutException:
            message = f"{self.provider_name} embedding request timed out after {self.timeout}s"
            logger.error(message)
            raise EmbeddingProviderError(
                message,
                code="TIMEOUT_ERROR",
                details={"model": self.model_name}
            )
        except httpx.RequestError as e:
            message = f"Could not reach {self.provider_name} embedding endpoint: {str(e)}"
            logger.error(message)
            raise EmbeddingProviderError(
                message,
                code="CONNECTION_ERROR",
                details={"model": self.model_name}
            )

        if not response.is_success:
            raise self._status_error(response)

        try:
            payload = response.json()
        except ValueError:
            raise EmbeddingProviderError(
                f"{self.provider_name} returned a response that is not JSON",
                code="MALFORMED_RESPONSE",
                details={"model": self.model_name}
            )

        embedding = self._parse_vector(self._extract_vector(payload))
        logger.debug(
            f"Embedded {len(text)} chars with {self.model_name} "
            f"({len(embedding)} dims) in {time.time() - start_time:.2f}s"
        )
        return embedding

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info(f"Warming up embedding model {self.model_name}...")
            start_time = time.time()
            self.embed_text("warmup query")
            logger.info(f"Model warmup completed in {time.time() - start_time:.1f}s")
            return True
        except EmbeddingProviderError as e:
            logger.error(f"Model warmup failed: {e.error.message}")
            return False

    @abstractmethod
    def _post(self, text: str) -> httpx.Response:
        """Send the provider request for one text."""

    @abstractmethod
    def _status_error(self, response: httpx.Response) -> EmbeddingProviderError:
        """Build the error for a non-2xx response."""

    @abstractmethod
    def _extract_vector(self, payload: Any) -> Any:
        """Pull the raw vector out of a decoded response body."""

    def _parse_vector(self, raw: Any) -> List[float]:
        if not isinstance(raw, list) or not raw:
            raise EmbeddingProviderError(
                f"{self.provider_name} response did not contain an embedding",
                code="MALFORMED_RESPONSE",
                details={"model": self.model_name}
            )
        try:
            return [float(value) for value in raw]
        except (TypeError, ValueError):
            raise EmbeddingProviderError(
                f"{self.provider_name} embedding contains non-numeric values",
                code="MALFORMED_RESPONSE",
                details={"model": self.model_name}
            )


class OllamaEmbeddingModel(EmbeddingModel):
    """Embeddings from a (usually local) Ollama server."""

    provider_name = "Ollama"

    def __init__(
        self,
        base_url: str = OLLAMA_URL,
        model_name: str = EMBEDDING_MODEL,
        timeout: float = REQUEST_TIMEOUT
    ):
        """
        Initialize the Ollama embedding client.

        Args:
            base_url: Ollama server URL, e.g. http://localhost:11434
            model_name: Embedding model pulled on the server
            timeout: Request timeout in seconds
        """
        if not base_url or not model_name:
            raise InputError("Ollama URL and Embedding Model are required for indexing with Ollama.")

        super().__init__(model_name, timeout)
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}/api/embeddings"

        logger.info(f"Initialized OllamaEmbeddingModel with model: {model_name} at {self.base_url}")

    def _post(self, text: str) -> httpx.Response:
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.api_url, json={"model": self.model_name, "prompt": text})

    def _status_error(self, response: httpx.Response) -> EmbeddingProviderError:
        detail = _error_detail(response)
        message = (
            f"Ollama embedding error: {detail}. Make sure the model '{self.model_name}' "
            f"is installed (run 'ollama pull {self.model_name}')."
        )
        logger.error(message)
        return EmbeddingProviderError(
            message,
            code="MODEL_NOT_FOUND" if response.status_code == 404 else "API_ERROR",
            details={"model": self.model_name, "status_code": response.status_code}
        )

    def _extract_vector(self, payload: Any) -> Any:
        if isinstance(payload, dict):
            return payload.get("embedding")
        return None


class HuggingFaceEmbeddingModel(EmbeddingModel):
    """Embeddings from the Hugging Face Inference API."""

    provider_name = "Hugging Face"

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = "sentence-transformers/all-mpnet-base-v2",
        timeout: float = REQUEST_TIMEOUT
    ):
        """
        Initialize the Hugging Face embedding client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier on the Hub
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise InputError("HUGGINGFACE_API_KEY environment variable is required")

        super().__init__(model_name, timeout)
        self.api_key = api_key
        self.api_url = f"https://api-inference.huggingface.co/models/{model_name}"

        logger.info(f"Initialized HuggingFaceEmbeddingModel with model: {model_name}")

    def _post(self, text: str) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "inputs": text,
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.api_url, headers=headers, json=payload)

    def _status_error(self, response: httpx.Response) -> EmbeddingProviderError:
        if response.status_code == 401:
            message = "Hugging Face authentication failed. Please check HUGGINGFACE_API_KEY."
            code = "AUTHENTICATION_ERROR"
        elif response.status_code == 429:
            message = "Hugging Face rate limit exceeded. Please try again later."
            code = "RATE_LIMIT_ERROR"
        else:
            detail = _error_detail(response)
            message = (
                f"Hugging Face embedding error: {detail}. Make sure the model "
                f"'{self.model_name}' exists and supports feature extraction."
            )
            code = "MODEL_NOT_FOUND" if response.status_code == 404 else "API_ERROR"

        logger.error(message)
        return EmbeddingProviderError(
            message,
            code=code,
            details={"model": self.model_name, "status_code": response.status_code}
        )

    def _extract_vector(self, payload: Any) -> Any:
        # Single input returns a vector; some pipelines wrap it in a batch
        if isinstance(payload, list) and payload and isinstance(payload[0], list):
            return payload[0]
        return payload


def _error_detail(response: httpx.Response) -> str:
    """Provider's own error message if the body carries one, else the status."""
    try:
        data = response.json()
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
    except ValueError:
        pass
    return getattr(response, "reason_phrase", None) or f"HTTP {response.status_code}"


def create_embedding_model(
    provider: Optional[str] = None,
    model_name: Optional[str] = None,
    base_url: Optional[str] = None
) -> EmbeddingModel:
    """
    Build the embedding client for a provider name.

    Args:
        provider: "ollama" or "huggingface" (defaults to EMBEDDING_PROVIDER)
        model_name: Model to use (defaults to EMBEDDING_MODEL for Ollama)
        base_url: Ollama server URL (defaults to OLLAMA_URL)

    Raises:
        InputError: If the provider is unknown or required settings are missing
    """
    provider = (provider or EMBEDDING_PROVIDER).lower()

    if provider == "ollama":
        return OllamaEmbeddingModel(
            base_url=base_url or OLLAMA_URL,
            model_name=model_name or EMBEDDING_MODEL
        )
    if provider == "huggingface":
        if model_name:
            return HuggingFaceEmbeddingModel(model_name=model_name)
        return HuggingFaceEmbeddingModel()

    raise InputError(f"Unknown embedding provider: {provider}", details={"provider": provider})
