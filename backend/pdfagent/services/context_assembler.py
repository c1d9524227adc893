"""Builds the context string and system prompt from retrieved chunks."""
from typing import List

from pdfagent.models.chunk import ScoredChunk

CHUNK_SEPARATOR = "\n\n---\n\n"

NOT_FOUND_ANSWER = "I cannot find the answer in the provided document."


def assemble_context(top_chunks: List[ScoredChunk], include_pages: bool = True) -> str:
    """
    Join ranked chunk texts into one context string.

    Args:
        top_chunks: Retrieved chunks in ranked order
        include_pages: Prefix each chunk with a "[Page N]" line when it has a page

    Returns:
        The context, or "" when there are no chunks
    """
    parts = []
    for scored in top_chunks:
        chunk = scored.chunk
        if include_pages and chunk.page_number is not None:
            parts.append(f"[Page {chunk.page_number}]\n{chunk.text}")
        else:
            parts.append(chunk.text)
    return CHUNK_SEPARATOR.join(parts)


def build_system_prompt(context: str) -> str:
    """System prompt instructing the model to answer from the document context."""
    return (
        "You are a helpful assistant. Use the following context from a PDF document "
        "to answer the user's question. Always mention the page number where you found "
        "the information (e.g., \"On page X...\"). If the answer is not in the context, "
        f"say \"{NOT_FOUND_ANSWER}\"\n\n"
        f"Context:\n{context}"
    )
