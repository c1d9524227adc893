"""Indexing pipeline: extract, chunk, embed and store a document."""
import logging
import time
from typing import Iterator, List, Optional

from pdfagent.config import INDEX_COMMIT_MODE
from pdfagent.models.chunk import Chunk
from pdfagent.models.document import Document
from pdfagent.models.events import IndexEvent
from pdfagent.services.chunking_engine import ChunkingEngine
from pdfagent.services.document_loader import DocumentLoader
from pdfagent.services.embedding_model import EmbeddingModel
from pdfagent.services.errors import InputError, PDFAgentError
from pdfagent.services.vector_store import VectorStore

logger = logging.getLogger(__name__)

COMMIT_MODES = ("incremental", "atomic")

NO_TEXT_MESSAGE = "No text found in PDF."


class Indexer:
    """
    Turns an uploaded PDF into stored chunk embeddings.

    Indexing is a generator of IndexEvent records so callers can stream
    progress as each chunk is embedded. Embedding calls are strictly
    sequential, one per chunk. Nothing is retried: the first failure ends
    the run with an error event. A consumer that stops iterating stops the
    run before the next provider call.

    Commit modes:
        incremental: the store is reset up front and each chunk is inserted
            as soon as it is embedded.
        atomic: chunks are collected and swapped in with one replace_all
            after the last embedding, so a failed run keeps the old document.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        chunking_engine: Optional[ChunkingEngine] = None,
        document_loader: Optional[DocumentLoader] = None,
        commit_mode: str = INDEX_COMMIT_MODE
    ):
        if commit_mode not in COMMIT_MODES:
            raise ValueError(f"commit_mode must be one of {COMMIT_MODES}, got {commit_mode!r}")

        self.vector_store = vector_store
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.document_loader = document_loader or DocumentLoader()
        self.commit_mode = commit_mode

    def index_upload(
        self,
        data: bytes,
        filename: str,
        embedding_model: EmbeddingModel
    ) -> Iterator[IndexEvent]:
        """
        Extract text from PDF bytes and index it.

        Yields:
            parsing, then the events of index_document
        """
        yield IndexEvent.parsing()

        try:
            document = self.document_loader.load_bytes(data, filename)
        except InputError as e:
            logger.error(f"Text extraction failed for {filename}: {e.error.message}")
            yield IndexEvent.failed(e.error.message)
            return

        yield from self.index_document(document, embedding_model)

    def index_document(
        self,
        document: Document,
        embedding_model: EmbeddingModel
    ) -> Iterator[IndexEvent]:
        """
        Chunk, embed and store an extracted document.

        Yields:
            one progress event per chunk, then complete or error
        """
        source_id = document.filename
        start_time = time.time()
        completed = False

        try:
            text_chunks = self.chunking_engine.chunk_document(document)
            total = len(text_chunks)

            if total == 0:
                # The previous document is still discarded: the store follows the latest upload
                self.vector_store.replace_all(source_id, [])
                logger.warning(f"No text found in {source_id}")
                completed = True
                yield IndexEvent.complete(0, NO_TEXT_MESSAGE)
                return

            if self.commit_mode == "incremental":
                self.vector_store.reset(source_id)

            staged: List[Chunk] = []
            for index, text_chunk in enumerate(text_chunks):
                chunk = Chunk(
                    source_id=source_id,
                    index=index,
                    page_number=text_chunk.page_number,
                    text=text_chunk.text,
                    embedding=embedding_model.embed_text(text_chunk.text)
                )
                if self.commit_mode == "incremental":
                    self.vector_store.insert(chunk)
                else:
                    staged.append(chunk)

                yield IndexEvent.step(index + 1, total)

            if self.commit_mode == "atomic":
                self.vector_store.replace_all(source_id, staged)

            elapsed = time.time() - start_time
            logger.info(f"Indexed {total} chunks from {source_id} in {elapsed:.1f}s")
            completed = True
            yield IndexEvent.complete(total, f"Indexed {total} chunks successfully.")

        except GeneratorExit:
            if not completed:
                logger.warning(f"Indexing of {source_id} cancelled by consumer")
            raise
        except PDFAgentError as e:
            logger.error(f"Indexing of {source_id} failed: {e.error.message}")
            yield IndexEvent.failed(e.error.message)
        except Exception as e:
            logger.error(f"Unexpected error indexing {source_id}: {e}", exc_info=True)
            yield IndexEvent.failed(str(e) or "Failed to process PDF")
