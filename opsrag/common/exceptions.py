"""커스텀 예외 클래스

운영 지식 검색(RAG) 엔진의 모든 커스텀 예외 정의
"""

from typing import Optional


class OpsRAGError(Exception):
    """Base exception for all opsrag errors"""
    pass


# Vector Store Exceptions
class NotInitializedError(OpsRAGError):
    """로드(initialize) 전에 저장소에 접근"""
    pass


class NotFoundError(OpsRAGError):
    """존재하지 않는 ID"""

    def __init__(self, message: str, entry_id: Optional[str] = None):
        self.entry_id = entry_id
        super().__init__(message)


class DimensionMismatchError(OpsRAGError):
    """임베딩 차원이 저장소 차원과 다름"""

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message or f"embedding dimension mismatch: expected {expected}, got {actual}"
        )


class PersistenceError(OpsRAGError):
    """저장 파일 읽기/쓰기 실패"""
    pass


# Knowledge Exceptions
class ValidationError(OpsRAGError):
    """필수 필드 누락 또는 잘못된 인자"""
    pass


# Embedding Exceptions
class EmbeddingError(OpsRAGError):
    """임베딩 제공자 실패"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.provider = provider
        self.status = status
        super().__init__(message)


class EmbeddingTimeoutError(EmbeddingError):
    """임베딩 요청 타임아웃"""
    pass


# Configuration Exceptions
class ConfigurationError(OpsRAGError):
    """설정 관련 에러"""
    pass
