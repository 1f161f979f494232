"""RAG System

설정 → 임베더 → 벡터 저장소 → 지식 저장소 → 검색 엔진을 명시적으로 조립하는 진입점
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog

from opsrag.ai_pipeline.rag_engine import Recommendation, RetrievalEngine, SearchResult
from opsrag.common.exceptions import OpsRAGError
from opsrag.config.config_loader import load_config
from opsrag.config.models import Config
from opsrag.knowledge.embedder import EmbeddingProvider, create_embedder
from opsrag.knowledge.file_vector_store import FileVectorStore
from opsrag.knowledge.models import KnowledgeEntry
from opsrag.knowledge.repository import EntryInput, KnowledgeRepository
from opsrag.knowledge.vector_store import VectorStore
from opsrag.monitoring.metrics import RAGMetrics, get_metrics

logger = structlog.get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class RAGSystem:
    """운영 지식 검색 시스템

    사용 예:
        >>> async with RAGSystem.from_config() as rag:
        ...     response = await rag.query("支付服务挂了没")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        embedder: Optional[EmbeddingProvider] = None,
        store: Optional[VectorStore] = None,
        metrics: Optional[RAGMetrics] = None,
    ):
        """초기화

        Args:
            config: 전체 설정 (None이면 기본값)
            embedder: 임베딩 제공자 (None이면 config.embedding으로 생성)
            store: 벡터 저장소 (None이면 config.store로 FileVectorStore 생성)
            metrics: RAGMetrics (None이면 프로세스 기본 인스턴스)
        """
        self.config = config or Config()
        self.metrics = metrics if metrics is not None else get_metrics()

        self.embedder = embedder or create_embedder(self.config.embedding, metrics=self.metrics)
        self.store = store or FileVectorStore(
            persist_path=self.config.store.persist_path,
            dimension=self.config.store.dimension,
        )
        self.repository = KnowledgeRepository(
            store=self.store,
            embedder=self.embedder,
            auto_initialize=self.config.knowledge.auto_initialize,
            metrics=self.metrics,
        )
        self.engine = RetrievalEngine(
            store=self.store,
            embedder=self.embedder,
            config=self.config.retrieval,
            metrics=self.metrics,
            enable_query_logging=self.config.logging.enable_query_logging,
            enable_performance_logging=self.config.logging.enable_performance_logging,
        )

        self._initialized = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: Union[Config, str, None] = None, **kwargs) -> "RAGSystem":
        """설정 객체 또는 YAML 경로로 생성

        Args:
            config: Config, 설정 파일 경로, 또는 None (기본값 사용, 파일을 읽지 않음)
        """
        if isinstance(config, str):
            config = load_config(config)
        return cls(config=config, **kwargs)

    async def initialize(self) -> None:
        """저장소 로드 및 기본 지식 투입 (여러 번 호출해도 안전)"""
        async with self._lock:
            if self._initialized:
                return
            await self.repository.initialize()
            self._initialized = True

        logger.info("rag_system_initialized",
                    provider=self.embedder.provider_name,
                    model=self.embedder.model_name,
                    dimension=self.embedder.dimension)

    async def shutdown(self) -> None:
        """임베더 세션 종료 및 저장소 종료"""
        async with self._lock:
            await self.embedder.close()
            await self.store.shutdown()
            self._initialized = False
        logger.info("rag_system_shutdown")

    async def __aenter__(self) -> "RAGSystem":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # 검색
    # ------------------------------------------------------------------

    async def query(
        self,
        user_input: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> Dict[str, Any]:
        """검색 후 응답 envelope 반환

        실패해도 예외 대신 {success: False, error} 를 반환한다.
        """
        try:
            result = await self.engine.search(user_input, top_k=top_k, threshold=threshold)
        except OpsRAGError as e:
            logger.error("rag_query_failed", error=str(e), error_type=type(e).__name__)
            return {
                "success": False,
                "query": user_input,
                "error": str(e),
                "timestamp": _timestamp(),
            }

        return {
            "success": True,
            "query": user_input,
            "relevant_knowledge": result.to_dict(),
            "timestamp": _timestamp(),
        }

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        return await self.engine.search(query, top_k=top_k, threshold=threshold)

    async def search_by_category(
        self,
        query: str,
        category: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        return await self.engine.search_by_category(query, category, top_k=top_k, threshold=threshold)

    async def search_by_risk_level(
        self,
        query: str,
        risk_level: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        return await self.engine.search_by_risk_level(query, risk_level, top_k=top_k, threshold=threshold)

    async def recommendations(
        self,
        exclude_intent: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> List[Recommendation]:
        return await self.engine.recommendations(exclude_intent, top_k=top_k)

    # ------------------------------------------------------------------
    # 지식 관리
    # ------------------------------------------------------------------

    async def add_knowledge(self, entry: EntryInput) -> str:
        return await self.repository.add(entry)

    async def update_knowledge(self, entry_id: str, entry: EntryInput) -> KnowledgeEntry:
        return await self.repository.update(entry_id, entry)

    async def delete_knowledge(self, entry_id: str) -> None:
        await self.repository.delete(entry_id)

    async def list_knowledge(self) -> List[KnowledgeEntry]:
        return await self.repository.list()

    async def status(self) -> Dict[str, Any]:
        """시스템 상태"""
        store_ready = self.store.is_ready()
        return {
            "initialized": self._initialized,
            "store_ready": store_ready,
            "knowledge_count": await self.repository.count() if store_ready else 0,
            "embedding_model": self.embedder.model_name,
            "embedding_dimension": self.embedder.dimension,
            "timestamp": _timestamp(),
        }
