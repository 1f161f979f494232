"""설정 모델 정의

Pydantic을 사용한 타입 안전 설정 검증 모델
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class EmbeddingProviderType(str, Enum):
    """임베딩 제공자 타입"""
    HTTP = "http"
    LOCAL = "local"
    SIMPLE = "simple"


class LogLevel(str, Enum):
    """로그 레벨"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """로그 포맷"""
    JSON = "json"
    TEXT = "text"


class EmbeddingConfig(BaseModel):
    """임베딩 서비스 설정"""
    model_config = {"protected_namespaces": (), "use_enum_values": True}

    provider: EmbeddingProviderType = Field(default=EmbeddingProviderType.HTTP, description="임베딩 제공자 (http, local, simple)")
    api_url: str = Field(default="https://api.siliconflow.cn/v1/embeddings", description="OpenAI 호환 임베딩 API URL")
    api_key: Optional[str] = Field(default=None, description="API 키 (Bearer)")
    model_name: str = Field(default="Pro/BAAI/bge-m3", description="임베딩 모델 이름")
    dimension: int = Field(default=1024, ge=1, le=8192, description="임베딩 차원")
    timeout: float = Field(default=30.0, gt=0.0, le=600.0, description="요청 타임아웃 (초)")
    batch_timeout_multiplier: float = Field(default=2.0, ge=1.0, le=10.0, description="배치 요청 타임아웃 배수")
    batch_size: int = Field(default=32, ge=1, le=512, description="로컬 모델 배치 크기")
    device: Optional[str] = Field(default=None, description="로컬 모델 디바이스 (cuda, cpu, None=auto)")


class StoreConfig(BaseModel):
    """벡터 저장소 설정"""
    persist_path: str = Field(default="./data/vector_store.json", description="저장 파일 경로")
    dimension: Optional[int] = Field(default=None, ge=1, le=8192, description="고정 차원 (없으면 첫 레코드 기준)")


class ScoringWeights(BaseModel):
    """관련도 점수 가중치

    경험적으로 정해진 값이므로 근거 없이 바꾸지 않는다.
    """
    similarity: float = Field(default=0.6, ge=0.0, le=1.0, description="벡터 유사도 가중치")
    keyword: float = Field(default=0.3, ge=0.0, le=1.0, description="키워드 매칭 가중치")
    description: float = Field(default=0.1, ge=0.0, le=1.0, description="설명 매칭 가중치")
    exact_match: float = Field(default=0.3, ge=0.0, le=1.0, description="키워드 완전 일치 점수")
    partial_match: float = Field(default=0.15, ge=0.0, le=1.0, description="키워드 부분 일치 점수")


class RetrievalConfig(BaseModel):
    """검색 설정"""
    default_top_k: int = Field(default=3, ge=1, le=100, description="기본 검색 수")
    default_threshold: float = Field(default=0.65, ge=0.0, le=1.0, description="기본 유사도 임계값")
    max_top_k: int = Field(default=10, ge=1, le=100, description="최대 검색 수")
    min_threshold: float = Field(default=0.3, ge=0.0, le=1.0, description="점검용 최소 임계값 (reinit 스크립트 테스트 쿼리)")
    recommendation_top_k: int = Field(default=5, ge=1, le=100, description="추천 기본 수")
    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    @field_validator('max_top_k')
    @classmethod
    def validate_max_top_k(cls, v: int, info) -> int:
        """max_top_k가 default_top_k보다 크거나 같은지 검증"""
        if 'default_top_k' in info.data and v < info.data['default_top_k']:
            raise ValueError(f"max_top_k ({v}) must be >= default_top_k ({info.data['default_top_k']})")
        return v

    @field_validator('min_threshold')
    @classmethod
    def validate_min_threshold(cls, v: float, info) -> float:
        """min_threshold가 default_threshold보다 작거나 같은지 검증"""
        if 'default_threshold' in info.data and v > info.data['default_threshold']:
            raise ValueError(
                f"min_threshold ({v}) must be <= default_threshold ({info.data['default_threshold']})"
            )
        return v


class KnowledgeConfig(BaseModel):
    """지식 베이스 설정"""
    auto_initialize: bool = Field(default=True, description="빈 저장소에 기본 지식 투입")


class LoggingConfig(BaseModel):
    """로깅 설정"""
    model_config = {"use_enum_values": True}

    level: LogLevel = Field(default=LogLevel.INFO, description="로그 레벨")
    format: LogFormat = Field(default=LogFormat.JSON, description="로그 포맷")
    output: str = Field(default="stdout", description="로그 출력 (stdout, file)")
    file_path: Optional[str] = Field(default=None, description="로그 파일 경로")
    enable_query_logging: bool = Field(default=False, description="검색어 원문 로깅")
    enable_performance_logging: bool = Field(default=False, description="검색 소요 시간 로깅")


class Config(BaseModel):
    """전체 설정 모델"""
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "use_enum_values": True,
        "validate_assignment": True,
    }
