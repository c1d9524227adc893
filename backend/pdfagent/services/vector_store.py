"""Vector stores holding the chunks of the active document."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional
from supabase import create_client, Client

from pdfagent.models.chunk import Chunk
from pdfagent.config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_TABLE, VECTOR_STORE
from pdfagent.services.errors import InputError

logger = logging.getLogger(__name__)

FETCH_PAGE_SIZE = 1000


class VectorStore(ABC):
    """
    Append-only chunk collection for a single active document.

    Chunks are immutable once written. The only mutation besides appending is
    replacing the whole collection when a new document is indexed.
    """

    backend_name = "base"

    @property
    @abstractmethod
    def source_id(self) -> Optional[str]:
        """Identifier (filename) of the document currently indexed."""

    @abstractmethod
    def replace_all(self, source_id: str, chunks: Iterable[Chunk]) -> None:
        """Discard every stored chunk and store the given set instead."""

    @abstractmethod
    def reset(self, source_id: str) -> None:
        """Discard every stored chunk and start an incremental run for source_id."""

    @abstractmethod
    def insert(self, chunk: Chunk) -> None:
        """Append one chunk to the active document."""

    @abstractmethod
    def fetch_all(self) -> List[Chunk]:
        """Return every stored chunk."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all chunks and forget the active document."""

    def count(self) -> int:
        """Number of stored chunks."""
        return len(self.fetch_all())

    def close(self) -> None:
        """Release resources held by the store."""

    def __enter__(self) -> "VectorStore":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class InMemoryVectorStore(VectorStore):
    """Process-local store; replace_all swaps the collection atomically."""

    backend_name = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._chunks: List[Chunk] = []
        self._source_id: Optional[str] = None

    @property
    def source_id(self) -> Optional[str]:
        return self._source_id

    def replace_all(self, source_id: str, chunks: Iterable[Chunk]) -> None:
        new_chunks = list(chunks)
        with self._lock:
            self._chunks = new_chunks
            self._source_id = source_id
        logger.info(f"Stored {len(new_chunks)} chunks for {source_id}")

    def reset(self, source_id: str) -> None:
        with self._lock:
            self._chunks = []
            self._source_id = source_id
        logger.debug(f"Reset store for {source_id}")

    def insert(self, chunk: Chunk) -> None:
        with self._lock:
            self._chunks.append(chunk)

    def fetch_all(self) -> List[Chunk]:
        with self._lock:
            return list(self._chunks)

    def count(self) -> int:
        with self._lock:
            return len(self._chunks)

    def clear(self) -> None:
        with self._lock:
            self._chunks = []
            self._source_id = None
        logger.info("Cleared all chunks from vector store")


class SupabaseVectorStore(VectorStore):
    """
    Store chunks in a Supabase (PostgreSQL) table.

    Expected table layout:
        CREATE TABLE pdf_chunks (
          id SERIAL PRIMARY KEY,
          filename TEXT,
          chunk_index INTEGER,
          page_number INTEGER,
          text TEXT,
          embedding JSONB
        );

    The embedding is written as a JSON array of floats, which round-trips
    exactly. replace_all issues a delete followed by an insert, so a reader
    running concurrently may observe an empty or partial table.
    """

    backend_name = "supabase"

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        table_name: str = SUPABASE_TABLE
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table to store chunks

        Raises:
            InputError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise InputError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized SupabaseVectorStore with table: {table_name}")

    @property
    def source_id(self) -> Optional[str]:
        try:
            response = self.client.table(self.table_name).select("filename").limit(1).execute()
        except Exception as e:
            error_msg = f"Failed to read active document: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return response.data[0]["filename"] if response.data else None

    def replace_all(self, source_id: str, chunks: Iterable[Chunk]) -> None:
        records = [self._to_record(chunk) for chunk in chunks]
        self.clear()
        if not records:
            return

        try:
            self.client.table(self.table_name).insert(records).execute()
            logger.info(f"Stored {len(records)} chunks for {source_id}")
        except Exception as e:
            error_msg = f"Failed to add chunks to vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def reset(self, source_id: str) -> None:
        self.clear()

    def insert(self, chunk: Chunk) -> None:
        try:
            self.client.table(self.table_name).insert(self._to_record(chunk)).execute()
        except Exception as e:
            error_msg = f"Failed to insert chunk {chunk.index}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def fetch_all(self) -> List[Chunk]:
        rows = []
        start = 0
        try:
            while True:
                response = (
                    self.client.table(self.table_name)
                    .select("filename, chunk_index, page_number, text, embedding")
                    .order("chunk_index")
                    .range(start, start + FETCH_PAGE_SIZE - 1)
                    .execute()
                )
                # A page can hold fewer rows than requested when the server caps responses
                if not response.data:
                    break
                rows.extend(response.data)
                start += len(response.data)
        except Exception as e:
            error_msg = f"Failed to fetch chunks from vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        return [
            Chunk(
                source_id=row["filename"],
                index=row["chunk_index"],
                page_number=row.get("page_number"),
                text=row["text"],
                embedding=[float(value) for value in row["embedding"]]
            )
            for row in rows
        ]

    def count(self) -> int:
        try:
            response = self.client.table(self.table_name).select("chunk_index", count="exact").execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count chunks in vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def clear(self) -> None:
        try:
            # PostgREST refuses an unfiltered delete
            self.client.table(self.table_name).delete().gte("chunk_index", 0).execute()
            logger.info("Cleared all chunks from vector store")
        except Exception as e:
            error_msg = f"Failed to clear vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    @staticmethod
    def _to_record(chunk: Chunk) -> dict:
        return {
            "filename": chunk.source_id,
            "chunk_index": chunk.index,
            "page_number": chunk.page_number,
            "text": chunk.text,
            "embedding": list(chunk.embedding)
        }


def create_vector_store(backend: Optional[str] = None) -> VectorStore:
    """
    Build the vector store selected by configuration.

    Args:
        backend: "memory" or "supabase" (defaults to VECTOR_STORE)

    Raises:
        InputError: If the backend is unknown or misconfigured
    """
    backend = (backend or VECTOR_STORE).lower()
    if backend == "memory":
        return InMemoryVectorStore()
    if backend == "supabase":
        return SupabaseVectorStore()
    raise InputError(f"Unknown vector store backend: {backend}", details={"backend": backend})
