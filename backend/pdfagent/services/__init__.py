"""Services for PDF Agent."""
from .errors import ErrorInfo, PDFAgentError, InputError, ProviderError, EmbeddingProviderError, ChatProviderError
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel, OllamaEmbeddingModel, HuggingFaceEmbeddingModel, create_embedding_model
from .vector_store import VectorStore, InMemoryVectorStore, SupabaseVectorStore, create_vector_store
from .retrieval_engine import RetrievalEngine, cosine_similarity, rank_chunks
from .context_assembler import assemble_context, build_system_prompt
from .llm_client import LLMClient, LLMResponse, OllamaClient, GroqClient, create_llm_client
from .indexer import Indexer

__all__ = ['ErrorInfo', 'PDFAgentError', 'InputError', 'ProviderError', 'EmbeddingProviderError', 'ChatProviderError', 'DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'OllamaEmbeddingModel', 'HuggingFaceEmbeddingModel', 'create_embedding_model', 'VectorStore', 'InMemoryVectorStore', 'SupabaseVectorStore', 'create_vector_store', 'RetrievalEngine', 'cosine_similarity', 'rank_chunks', 'assemble_context', 'build_system_prompt', 'LLMClient', 'LLMResponse', 'OllamaClient', 'GroqClient', 'create_llm_client', 'Indexer']
