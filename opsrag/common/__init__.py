"""공통 유틸리티 (로깅, 예외, 락)"""

from .exceptions import (
    OpsRAGError,
    NotInitializedError,
    NotFoundError,
    DimensionMismatchError,
    PersistenceError,
    ValidationError,
    EmbeddingError,
    EmbeddingTimeoutError,
    ConfigurationError,
)
from .logger import setup_logging, get_logger, log_with_context

__all__ = [
    "OpsRAGError",
    "NotInitializedError",
    "NotFoundError",
    "DimensionMismatchError",
    "PersistenceError",
    "ValidationError",
    "EmbeddingError",
    "EmbeddingTimeoutError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
    "log_with_context",
]
