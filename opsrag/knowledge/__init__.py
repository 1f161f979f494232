"""
Knowledge Base Components

Vector Store, Embedder, Knowledge Repository
"""

from .models import KnowledgeEntry, Parameter, RiskLevel, build_document_text
from .vector_store import VectorStore, QueryResult, StoreSnapshot, matches_where
from .file_vector_store import FileVectorStore, DEFAULT_PERSIST_PATH
from .embedder import EmbeddingProvider, HttpEmbedder, SimpleEmbedder, create_embedder
from .repository import KnowledgeRepository
from .seed_data import DEFAULT_KNOWLEDGE

__all__ = [
    "KnowledgeEntry",
    "Parameter",
    "RiskLevel",
    "build_document_text",
    "VectorStore",
    "QueryResult",
    "StoreSnapshot",
    "matches_where",
    "FileVectorStore",
    "DEFAULT_PERSIST_PATH",
    "EmbeddingProvider",
    "HttpEmbedder",
    "SimpleEmbedder",
    "create_embedder",
    "KnowledgeRepository",
    "DEFAULT_KNOWLEDGE",
]
