"""Chat providers: local Ollama over HTTP and hosted Groq."""
import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import httpx
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError

from pdfagent.config import (
    CHAT_PROVIDER,
    GROQ_API_KEY,
    MAX_CHAT_TOKENS,
    OLLAMA_URL,
    REQUEST_TIMEOUT,
)
from pdfagent.models.api import ChatMessage
from pdfagent.services.errors import ChatProviderError, InputError

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


class LLMClient(ABC):
    """Sends an ordered message list to a chat model and returns its reply."""

    provider_name = "base"

    @abstractmethod
    def generate(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int = MAX_CHAT_TOKENS
    ) -> LLMResponse:
        """
        Generate the assistant reply.

        Args:
            model: Chat model name
            messages: [{"role", "content"}, ...] with the system prompt first
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            ChatProviderError: Structured error with code, message, and details
        """

    @staticmethod
    def build_messages(
        system_prompt: str,
        history: Optional[Sequence[ChatMessage]],
        message: str
    ) -> List[Dict[str, str]]:
        """
        Build the chat message list.

        Args:
            system_prompt: Instructions plus injected document context
            history: Prior turns in chronological order
            message: New user message

        Returns:
            System prompt, prior turns, then the new user message
        """
        messages = [{"role": "system", "content": system_prompt}]
        for turn in history or []:
            messages.append({"role": turn.role, "content": turn.text})
        messages.append({"role": "user", "content": message})
        return messages

    def _fail(
        self,
        code: str,
        message: str,
        model: str,
        start_time: float,
        error: Exception,
        **details: Any
    ) -> ChatProviderError:
        latency_ms = int((time.time() - start_time) * 1000)
        details = {
            "model": model,
            "latency_ms": latency_ms,
            "original_error": str(error),
            **details
        }
        logger.error(
            f"{self.provider_name} chat error: code={code}, model={model}, "
            f"latency={latency_ms}ms, error={error}",
            exc_info=error if error.__traceback__ else None,
            extra={"error_code": code, "error_details": details}
        )
        return ChatProviderError(message, code=code, details=details)


class OllamaClient(LLMClient):
    """Client for a (usually local) Ollama server's /api/chat endpoint."""

    provider_name = "Ollama"

    def __init__(self, base_url: str = OLLAMA_URL, timeout: float = REQUEST_TIMEOUT):
        """
        Initialize the Ollama chat client.

        Args:
            base_url: Ollama server URL, e.g. http://localhost:11434
            timeout: Request timeout in seconds
        """
        if not base_url:
            raise InputError("Ollama URL is required.")

        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}/api/chat"
        self.timeout = timeout
        logger.info(f"OllamaClient initialized for {self.base_url}")

    def generate(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int = MAX_CHAT_TOKENS
    ) -> LLMResponse:
        start_time = time.time()
        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": {"num_predict": max_tokens}
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.api_url, json=payload)
        except httpx.TimeoutException as e:
            raise self._fail("TIMEOUT_ERROR", "Request timed out. Please try again.", model, start_time, e)
        except httpx.RequestError as e:
            raise self._fail(
                "CONNECTION_ERROR",
                f"Could not reach Ollama at {self.base_url}: {str(e)}",
                model, start_time, e
            )

        if not response.is_success:
            detail = response.reason_phrase or f"HTTP {response.status_code}"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("error"):
                    detail = str(body["error"])
            except ValueError:
                pass
            raise self._fail(
                "MODEL_NOT_FOUND" if response.status_code == 404 else "API_ERROR",
                f"Ollama chat error: {detail}. Make sure the model '{model}' is installed "
                f"(run 'ollama pull {model}').",
                model, start_time, RuntimeError(detail),
                status_code=response.status_code
            )

        try:
            data = response.json()
            text = data["message"]["content"]
        except (ValueError, KeyError, TypeError) as e:
            raise self._fail(
                "MALFORMED_RESPONSE",
                "Ollama returned a chat response without a message.",
                model, start_time, e
            )

        latency_ms = int((time.time() - start_time) * 1000)
        tokens_input = data.get("prompt_eval_count", 0)
        tokens_output = data.get("eval_count", 0)

        logger.info(
            f"Generated response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model
        )


class GroqClient(LLMClient):
    """Client for interfacing with Groq API for text generation."""

    provider_name = "Groq"

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise InputError("GROQ_API_KEY must be provided or set in environment")

        self.client = Groq(api_key=self.api_key)
        logger.info("GroqClient initialized successfully")

    def generate(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int = MAX_CHAT_TOKENS
    ) -> LLMResponse:
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=0.7
            )

        except RateLimitError as e:
            raise self._fail(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e,
                retry_after=60
            )
        except AuthenticationError as e:
            raise self._fail(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e
            )
        except APITimeoutError as e:
            raise self._fail("TIMEOUT_ERROR", "Request timed out. Please try again.", model, start_time, e)
        except APIError as e:
            raise self._fail("API_ERROR", f"Groq API error: {str(e)}", model, start_time, e)
        except Exception as e:
            raise self._fail(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e,
                error_type=type(e).__name__
            )

        latency_ms = int((time.time() - start_time) * 1000)
        text = response.choices[0].message.content
        tokens_input = response.usage.prompt_tokens
        tokens_output = response.usage.completion_tokens

        logger.info(
            f"Generated response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model
        )


def create_llm_client(provider: Optional[str] = None, base_url: Optional[str] = None) -> LLMClient:
    """
    Build the chat client for a provider name.

    Args:
        provider: "ollama" or "groq" (defaults to CHAT_PROVIDER)
        base_url: Ollama server URL (defaults to OLLAMA_URL)

    Raises:
        InputError: If the provider is unknown or required settings are missing
    """
    provider = (provider or CHAT_PROVIDER).lower()
    if provider == "ollama":
        return OllamaClient(base_url=base_url or OLLAMA_URL)
    if provider == "groq":
        return GroqClient()
    raise InputError(f"Unknown chat provider: {provider}", details={"provider": provider})