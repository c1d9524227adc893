"""
Document ingestion script for PDF Agent.

Indexes a local PDF into the configured vector store and prints each
status event as one JSON line, the same records the upload endpoint
streams. Only useful with a persistent store (VECTOR_STORE=supabase).

Usage:
    pdfagent-ingest path/to/document.pdf [--provider ollama] [--model nomic-embed-text]
"""
import argparse
import logging
import sys

from pdfagent.config import EMBEDDING_MODEL, EMBEDDING_PROVIDER, LOG_FORMAT, LOG_LEVEL, OLLAMA_URL
from pdfagent.logger import setup_logging
from pdfagent.models.events import ERROR
from pdfagent.services.embedding_model import create_embedding_model
from pdfagent.services.errors import InputError
from pdfagent.services.indexer import Indexer
from pdfagent.services.vector_store import create_vector_store

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index a PDF for PDF Agent")
    parser.add_argument("pdf", help="Path to the PDF file")
    parser.add_argument("--provider", default=EMBEDDING_PROVIDER, help="Embedding provider")
    parser.add_argument("--model", default=EMBEDDING_MODEL, help="Embedding model")
    parser.add_argument("--ollama-url", default=OLLAMA_URL, help="Ollama server URL")
    parser.add_argument("--store", default=None, help="Vector store backend (memory or supabase)")
    parser.add_argument(
        "--commit-mode",
        choices=("incremental", "atomic"),
        default=None,
        help="Write chunks as they are embedded or all at once"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main ingestion process."""
    args = parse_args(argv)
    setup_logging(LOG_LEVEL, LOG_FORMAT)

    try:
        embedding_model = create_embedding_model(args.provider, args.model, args.ollama_url)
        vector_store = create_vector_store(args.store)
    except InputError as e:
        logger.error(e.error.message)
        return 2

    with vector_store:
        indexer_kwargs = {"commit_mode": args.commit_mode} if args.commit_mode else {}
        indexer = Indexer(vector_store, **indexer_kwargs)

        try:
            document = indexer.document_loader.load_file(args.pdf)
        except InputError as e:
            logger.error(e.error.message)
            return 2

        # Fail before the store is touched when the provider is unreachable
        if not embedding_model.warmup():
            logger.error(f"Embedding model {embedding_model.model_name} is not available")
            return 1

        last_event = None
        try:
            for event in indexer.index_document(document, embedding_model):
                print(event.to_json_line(), end="", flush=True)
                last_event = event
        except KeyboardInterrupt:
            logger.warning("Ingestion interrupted by user")
            return 130

    if last_event is None or not last_event.is_terminal:
        return 1
    return 1 if last_event.status == ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
