"""Integration tests for the HTTP endpoints."""
import sys
import json
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
import fitz  # PyMuPDF
from fastapi.testclient import TestClient
from unittest.mock import Mock, patch, MagicMock

from pdfagent.main import app
from pdfagent.models.chunk import Chunk
from pdfagent.services.chunking_engine import ChunkingEngine
from pdfagent.services.embedding_model import EmbeddingModel
from pdfagent.services.errors import ChatProviderError, InputError
from pdfagent.services.indexer import Indexer
from pdfagent.services.llm_client import LLMClient, LLMResponse
from pdfagent.services.retrieval_engine import RetrievalEngine
from pdfagent.services.vector_store import InMemoryVectorStore


def _pdf_bytes(*page_texts):
    pdf = fitz.open()
    for text in page_texts:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = pdf.tobytes()
    pdf.close()
    return data


def _events(response):
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def client(store):
    """Test client with fresh in-memory services (lifespan is not run)."""
    app.state.vector_store = store
    app.state.retrieval_engine = RetrievalEngine(store, top_k=3)
    app.state.indexer = Indexer(store, chunking_engine=ChunkingEngine(chunk_size=1000, chunk_overlap=200))
    app.state.tiktoken_encoder = Mock()
    app.state.tiktoken_encoder.encode.return_value = [1] * 10
    return TestClient(app)


@pytest.fixture
def embedding_model():
    model = Mock(spec=EmbeddingModel)
    model.model_name = "nomic-embed-text"
    model.embed_text.return_value = [1.0, 0.0]
    return model


@pytest.fixture
def llm_client():
    llm = Mock(spec=LLMClient)
    llm.generate.return_value = LLMResponse(
        text="It is on page 2.",
        tokens_input=100,
        tokens_output=8,
        latency_ms=40,
        model_used="llama3"
    )
    return llm


class TestHealth:
    """Test suite for health endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        response = client.get("/health")
        assert response.json()["status"] == "healthy"


class TestStatusEndpoint:
    """Test suite for GET /api/status."""

    def test_empty(self, client):
        """Test status with nothing indexed."""
        data = client.get("/api/status").json()
        assert data == {"document": None, "chunks": 0, "vector_store": "memory"}

    def test_after_indexing(self, client, store):
        """Test status reports the active document."""
        store.replace_all("manual.pdf", [Chunk(source_id="manual.pdf", index=0, text="t", embedding=[1.0])])

        data = client.get("/api/status").json()

        assert data["document"] == "manual.pdf"
        assert data["chunks"] == 1


class TestUploadEndpoint:
    """Test suite for POST /api/upload."""

    def test_upload_streams_progress(self, client, store, embedding_model):
        """Test a PDF is indexed with parsing, progress and complete records."""
        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model) as factory:
            response = client.post(
                "/api/upload",
                files={"file": ("guide.pdf", _pdf_bytes("Page one text", "Page two text"), "application/pdf")},
                data={"provider": "ollama", "ollama_url": "http://localhost:11434", "embedding_model": "nomic-embed-text"}
            )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        factory.assert_called_once_with("ollama", "nomic-embed-text", "http://localhost:11434")

        events = _events(response)
        assert [e["status"] for e in events] == ["parsing", "progress", "progress", "complete"]
        assert events[-1]["indexed_count"] == 2
        assert events[2] == {"status": "progress", "progress": 100, "current": 2, "total": 2}

        chunks = store.fetch_all()
        assert [(c.index, c.page_number) for c in chunks] == [(0, 1), (1, 2)]
        assert store.source_id == "guide.pdf"

    def test_upload_without_text(self, client, store, embedding_model):
        """Test a PDF with no extractable text completes with zero chunks."""
        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model):
            response = client.post(
                "/api/upload",
                files={"file": ("scan.pdf", _pdf_bytes(""), "application/pdf")}
            )

        events = _events(response)
        assert response.status_code == 200
        assert [e["status"] for e in events] == ["parsing", "complete"]
        assert events[-1]["indexed_count"] == 0
        assert events[-1]["message"] == "No text found in PDF."
        embedding_model.embed_text.assert_not_called()

    def test_upload_without_file(self, client):
        """Test a missing file is rejected with a single error record."""
        response = client.post("/api/upload", data={"provider": "ollama"})

        assert response.status_code == 400
        assert _events(response) == [{"status": "error", "error": "No file uploaded"}]

    def test_upload_with_unknown_provider(self, client):
        """Test bad provider configuration is rejected before indexing."""
        response = client.post(
            "/api/upload",
            files={"file": ("guide.pdf", _pdf_bytes("text"), "application/pdf")},
            data={"provider": "gemini"}
        )

        assert response.status_code == 400
        events = _events(response)
        assert len(events) == 1
        assert "Unknown embedding provider" in events[0]["error"]

    @patch('httpx.Client')
    def test_unknown_model_ends_with_error(self, mock_client_class, client):
        """Test an Ollama 404 for the embedding model is the final stream record."""
        not_found = Mock()
        not_found.status_code = 404
        not_found.is_success = False
        not_found.reason_phrase = "Not Found"
        not_found.json.return_value = {"error": "model \"mxbai-embed-large\" not found, try pulling it first"}
        mock_client = MagicMock()
        mock_client.__enter__.return_value.post.return_value = not_found
        mock_client_class.return_value = mock_client

        response = client.post(
            "/api/upload",
            files={"file": ("guide.pdf", _pdf_bytes("Some text"), "application/pdf")},
            data={"provider": "ollama", "ollama_url": "http://localhost:11434", "embedding_model": "mxbai-embed-large"}
        )

        events = _events(response)
        assert response.status_code == 200
        assert events[-1]["status"] == "error"
        assert "mxbai-embed-large" in events[-1]["error"]
        assert "ollama pull" in events[-1]["error"]

    def test_upload_not_a_pdf(self, client, embedding_model):
        """Test unreadable files end the stream with an error."""
        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model):
            response = client.post(
                "/api/upload",
                files={"file": ("notes.txt", b"just some text", "text/plain")}
            )

        events = _events(response)
        assert [e["status"] for e in events] == ["parsing", "error"]


class TestChatEndpoint:
    """Test suite for POST /api/chat."""

    def _index(self, store):
        store.replace_all("guide.pdf", [
            Chunk(source_id="guide.pdf", index=0, page_number=1, text="Intro text", embedding=[0.0, 1.0]),
            Chunk(source_id="guide.pdf", index=1, page_number=2, text="Warranty: two years", embedding=[1.0, 0.0]),
            Chunk(source_id="guide.pdf", index=2, page_number=3, text="Appendix", embedding=[0.6, 0.8]),
        ])

    def test_empty_message(self, client):
        """Test an empty message is rejected."""
        response = client.post("/api/chat", json={"message": "   "})

        assert response.status_code == 400
        assert response.json()["detail"]["error"]["message"] == "Message is required"

    def test_chat_with_context(self, client, store, embedding_model, llm_client):
        """Test retrieved chunks are injected and returned as sources."""
        self._index(store)

        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model), \
                patch('pdfagent.main.create_llm_client', return_value=llm_client):
            response = client.post("/api/chat", json={
                "message": "How long is the warranty?",
                "history": [
                    {"role": "user", "text": "Hi"},
                    {"role": "assistant", "text": "Hello"}
                ],
                "provider": "ollama",
                "chat_model": "llama3",
                "top_k": 2
            })

        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "It is on page 2."
        assert [s["chunk_index"] for s in data["sources"]] == [1, 2]
        assert data["sources"][0]["page"] == 2
        assert data["sources"][0]["score"] == pytest.approx(1.0)
        assert data["metadata"]["chunks_retrieved"] == 2
        assert data["metadata"]["prompt_tokens"] == 40

        embedding_model.embed_text.assert_called_once_with("How long is the warranty?")
        kwargs = llm_client.generate.call_args.kwargs
        assert kwargs["model"] == "llama3"
        messages = kwargs["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert "[Page 2]\nWarranty: two years" in messages[0]["content"]
        assert "Intro text" not in messages[0]["content"]
        assert messages[-1]["content"] == "How long is the warranty?"

    def test_chat_without_document(self, client, embedding_model, llm_client):
        """Test chatting with nothing indexed sends empty context and no embedding call."""
        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model), \
                patch('pdfagent.main.create_llm_client', return_value=llm_client):
            response = client.post("/api/chat", json={"message": "Hello?"})

        assert response.status_code == 200
        assert response.json()["sources"] == []
        embedding_model.embed_text.assert_not_called()
        system_prompt = llm_client.generate.call_args.kwargs["messages"][0]["content"]
        assert system_prompt.endswith("Context:\n")

    def test_chat_provider_error(self, client, embedding_model, llm_client):
        """Test chat provider failures return a single 502 error."""
        llm_client.generate.side_effect = ChatProviderError(
            "Ollama chat error: model 'llama9' not found.",
            code="MODEL_NOT_FOUND",
            details={"model": "llama9"}
        )

        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model), \
                patch('pdfagent.main.create_llm_client', return_value=llm_client):
            response = client.post("/api/chat", json={"message": "Hello?", "chat_model": "llama9"})

        assert response.status_code == 502
        error = response.json()["detail"]["error"]
        assert error["code"] == "MODEL_NOT_FOUND"
        assert "llama9" in error["message"]

    def test_chat_unknown_provider(self, client):
        """Test an unknown chat provider is an input error."""
        response = client.post("/api/chat", json={"message": "Hello?", "provider": "gemini"})

        assert response.status_code == 400
        assert "Unknown chat provider" in response.json()["detail"]["error"]["message"]

    def test_chat_dimension_mismatch(self, client, store, embedding_model, llm_client):
        """Test a query embedded with another model is rejected."""
        self._index(store)
        embedding_model.embed_text.return_value = [1.0, 0.0, 0.0]

        with patch('pdfagent.main.create_embedding_model', return_value=embedding_model), \
                patch('pdfagent.main.create_llm_client', return_value=llm_client):
            response = client.post("/api/chat", json={"message": "Hello?"})

        assert response.status_code == 400
        assert "Embedding dimensions differ" in response.json()["detail"]["error"]["message"]
        llm_client.generate.assert_not_called()

    def test_chat_missing_embedding_configuration(self, client, llm_client):
        """Test embedding configuration errors are input errors."""
        with patch('pdfagent.main.create_embedding_model', side_effect=InputError("Ollama URL and Embedding Model are required.")), \
                patch('pdfagent.main.create_llm_client', return_value=llm_client):
            response = client.post("/api/chat", json={"message": "Hello?"})

        assert response.status_code == 400
