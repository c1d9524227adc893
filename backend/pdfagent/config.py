"""Configuration management for PDF Agent."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Vector Store Configuration
VECTOR_STORE = os.getenv("VECTOR_STORE", "memory")  # "memory" or "supabase"
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "pdf_chunks")

# Provider Configuration
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")
EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "ollama")  # "ollama" or "huggingface"
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
CHAT_PROVIDER = os.getenv("CHAT_PROVIDER", "ollama")  # "ollama" or "groq"
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama3")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "120"))
MAX_CHAT_TOKENS = int(os.getenv("MAX_CHAT_TOKENS", "1024"))

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))  # characters

# Retrieval Configuration
TOP_K = int(os.getenv("TOP_K", "3"))

# Indexing Configuration
INDEX_COMMIT_MODE = os.getenv("INDEX_COMMIT_MODE", "incremental")  # "incremental" or "atomic"
