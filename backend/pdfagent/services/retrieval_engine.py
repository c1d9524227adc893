"""Retrieval engine: cosine similarity scoring and top-k selection."""
import logging
from typing import List, Optional, Sequence
import numpy as np

from pdfagent.models.chunk import Chunk, ScoredChunk
from pdfagent.services.vector_store import VectorStore
from pdfagent.services.embedding_model import EmbeddingModel
from pdfagent.config import TOP_K

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length
    """
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(
            f"Embedding dimensions differ ({a.size} vs {b.size}); "
            f"was the document indexed with another embedding model?"
        )

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    score = float(np.dot(a, b) / (norm_a * norm_b))
    # Rounding can push parallel vectors a hair outside [-1, 1]
    return max(-1.0, min(1.0, score))


def rank_chunks(
    query_embedding: Sequence[float],
    chunks: Sequence[Chunk],
    top_k: int = TOP_K
) -> List[ScoredChunk]:
    """
    Score every chunk against the query and keep the best top_k.

    Sorting is stable: chunks with equal scores keep their input order.

    Args:
        query_embedding: Embedding of the user query
        chunks: Full chunk collection
        top_k: Maximum number of chunks to return

    Returns:
        Up to top_k scored chunks by descending score, empty if chunks is empty

    Raises:
        ValueError: If top_k is not positive or dimensions differ
    """
    if top_k <= 0:
        raise ValueError("top_k must be positive")
    if not chunks:
        return []

    scores = np.array([cosine_similarity(query_embedding, chunk.embedding) for chunk in chunks])
    order = np.argsort(-scores, kind="stable")[:top_k]

    return [ScoredChunk(chunk=chunks[i], score=float(scores[i])) for i in order]


class RetrievalEngine:
    """Orchestrate query embedding and chunk ranking against the vector store."""

    def __init__(self, vector_store: VectorStore, top_k: int = TOP_K):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Store holding the active document's chunks
            top_k: Default number of chunks to retrieve
        """
        self.vector_store = vector_store
        self.top_k = top_k
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query: str,
        embedding_model: EmbeddingModel,
        top_k: Optional[int] = None
    ) -> List[ScoredChunk]:
        """
        Retrieve the chunks most similar to a query.

        The query is embedded only when the store holds chunks, so chatting
        without an indexed document costs no embedding call.

        Args:
            query: User question
            embedding_model: Client used to embed the query
            top_k: Override for the default number of chunks

        Returns:
            Ranked chunks, empty if nothing is indexed

        Raises:
            EmbeddingProviderError: If the query embedding fails
            ValueError: If the query embedding does not match the stored dimension
        """
        chunks = self.vector_store.fetch_all()
        if not chunks:
            logger.info("No indexed chunks, skipping retrieval")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = embedding_model.embed_text(query)

        results = rank_chunks(query_embedding, chunks, self.top_k if top_k is None else top_k)
        logger.info(
            f"Retrieved {len(results)} of {len(chunks)} chunks "
            f"(top score: {results[0].score:.3f})"
        )
        return results
