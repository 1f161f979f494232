"""opsrag: 운영 지식 검색(RAG) 엔진"""

from .system import RAGSystem

__version__ = "0.1.0"

__all__ = ["RAGSystem", "__version__"]
