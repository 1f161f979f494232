"""설정 모듈"""

from .models import (
    Config,
    EmbeddingConfig,
    EmbeddingProviderType,
    StoreConfig,
    RetrievalConfig,
    ScoringWeights,
    KnowledgeConfig,
    LoggingConfig,
    LogLevel,
    LogFormat,
)
from .config_loader import ConfigLoader, load_config

__all__ = [
    "Config",
    "EmbeddingConfig",
    "EmbeddingProviderType",
    "StoreConfig",
    "RetrievalConfig",
    "ScoringWeights",
    "KnowledgeConfig",
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    "ConfigLoader",
    "load_config",
]
