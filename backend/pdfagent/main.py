"""Main entry point for the PDF Agent API."""
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional

import tiktoken
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from pdfagent import __version__
from pdfagent.config import CHAT_MODEL, CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL, PORT
from pdfagent.logger import setup_logging
from pdfagent.models.api import ChatRequest, ChatResponse, Source, StatusResponse
from pdfagent.models.events import IndexEvent
from pdfagent.services.context_assembler import assemble_context, build_system_prompt
from pdfagent.services.embedding_model import create_embedding_model
from pdfagent.services.errors import InputError, ProviderError
from pdfagent.services.indexer import Indexer
from pdfagent.services.llm_client import LLMClient, create_llm_client
from pdfagent.services.retrieval_engine import RetrievalEngine
from pdfagent.services.vector_store import create_vector_store

logger = logging.getLogger(__name__)

NDJSON_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no"  # Disable buffering in nginx
}


def init_services(app: FastAPI) -> None:
    """Create the vector store and the services sharing it."""
    vector_store = create_vector_store()
    app.state.vector_store = vector_store
    app.state.retrieval_engine = RetrievalEngine(vector_store)
    app.state.indexer = Indexer(vector_store)
    logger.info(f"Initialized {vector_store.backend_name} vector store")

    app.state.tiktoken_encoder = tiktoken.get_encoding("o200k_base")
    logger.info("Initialized tiktoken encoder (o200k_base)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup and release them on shutdown."""
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing PDF Agent services...")
    try:
        init_services(app)
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    logger.info("All services initialized successfully")
    yield

    app.state.vector_store.close()
    logger.info("PDF Agent services shut down")


app = FastAPI(
    title="PDF Agent",
    description="Chat with an uploaded PDF through retrieval-augmented generation",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "PDF Agent API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "pdfagent",
        "version": __version__
    }


@app.get("/api/status", response_model=StatusResponse)
def status_endpoint(request: Request) -> StatusResponse:
    """Report which document is indexed and how many chunks it has."""
    vector_store = request.app.state.vector_store
    return StatusResponse(
        document=vector_store.source_id,
        chunks=vector_store.count(),
        vector_store=vector_store.backend_name
    )


@app.post("/api/upload")
async def upload_endpoint(
    request: Request,
    file: Optional[UploadFile] = File(None),
    provider: Optional[str] = Form(None),
    ollama_url: Optional[str] = Form(None),
    embedding_model: Optional[str] = Form(None),
):
    """
    Upload a PDF and index it, streaming progress as NDJSON.

    Each line is one IndexEvent: parsing, progress (one per chunk), then a
    terminal complete or error record. Input problems detected before any
    work starts are answered with status 400 and a single error record.
    """
    if file is None:
        return _ndjson_response([IndexEvent.failed("No file uploaded")], status_code=400)

    try:
        model = create_embedding_model(provider, embedding_model, ollama_url)
    except InputError as e:
        logger.warning(f"Rejected upload of {file.filename}: {e.error.message}")
        return _ndjson_response([IndexEvent.failed(e.error.message)], status_code=400)

    data = await file.read()
    logger.info(f"Indexing {file.filename} ({len(data)} bytes) with {model.model_name}")

    events = request.app.state.indexer.index_upload(data, file.filename, model)
    return _ndjson_response(events)


@app.post("/api/chat", response_model=ChatResponse)
def chat_endpoint(chat_request: ChatRequest, request: Request) -> ChatResponse:
    """
    Answer a question about the indexed PDF.

    Performs one query embedding (only when a document is indexed), ranks
    the stored chunks, injects the best ones into the system prompt and
    makes one chat completion call.

    Raises:
        HTTPException: 400 for input errors, 502 for provider failures
    """
    start_time = time.time()
    state = request.app.state

    try:
        if not chat_request.message or not chat_request.message.strip():
            raise InputError("Message is required")

        chat_model = chat_request.chat_model or CHAT_MODEL
        llm_client = create_llm_client(chat_request.provider, chat_request.ollama_url)
        embedding_model = create_embedding_model(
            chat_request.embedding_provider,
            chat_request.embedding_model,
            chat_request.ollama_url
        )

        logger.info(f"Processing chat message: {chat_request.message[:100]}...")

        retrieved = state.retrieval_engine.retrieve(
            chat_request.message,
            embedding_model,
            top_k=chat_request.top_k
        )
        context = assemble_context(retrieved)

        messages = LLMClient.build_messages(
            build_system_prompt(context),
            chat_request.history,
            chat_request.message
        )
        prompt_tokens = _count_tokens(getattr(state, "tiktoken_encoder", None), messages)

        llm_response = llm_client.generate(model=chat_model, messages=messages)

    except InputError as e:
        logger.warning(f"Rejected chat request: {e.error.message}")
        raise HTTPException(status_code=400, detail={"error": e.error.to_dict()})
    except ProviderError as e:
        logger.error(f"Provider error: {e.error.message}")
        raise HTTPException(status_code=502, detail={"error": e.error.to_dict()})
    except ValueError as e:
        logger.warning(f"Invalid chat request: {e}")
        raise HTTPException(
            status_code=400,
            detail={"error": {"code": "INPUT_ERROR", "message": str(e), "details": {}}}
        )
    except Exception as e:
        logger.error(f"Unexpected error processing chat: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    total_latency_ms = int((time.time() - start_time) * 1000)
    logger.info(f"Chat processed successfully in {total_latency_ms}ms")

    return ChatResponse(
        reply=llm_response.text,
        sources=[
            Source(chunk_index=scored.chunk.index, page=scored.chunk.page_number, score=scored.score)
            for scored in retrieved
        ],
        metadata={
            "chat_model": llm_response.model_used,
            "embedding_model": embedding_model.model_name,
            "chunks_retrieved": len(retrieved),
            "prompt_tokens": prompt_tokens,
            "tokens": {
                "input": llm_response.tokens_input,
                "output": llm_response.tokens_output
            },
            "latency_ms": total_latency_ms
        }
    )


def _ndjson_response(events: Iterable[IndexEvent], status_code: int = 200) -> StreamingResponse:
    def generate_stream():
        try:
            for event in events:
                yield event.to_json_line()
        finally:
            # Stop the indexer (and its provider calls) if the client went away
            close = getattr(events, "close", None)
            if close is not None:
                close()

    return StreamingResponse(
        generate_stream(),
        status_code=status_code,
        media_type="application/x-ndjson",
        headers=NDJSON_HEADERS
    )


def _count_tokens(encoder, messages: List[Dict[str, str]]) -> Optional[int]:
    """Estimate prompt size; None when no encoder is available."""
    if encoder is None:
        return None
    return sum(len(encoder.encode(message["content"])) for message in messages)


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info(f"Starting PDF Agent API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()
