"""
RAG (Retrieval-Augmented Generation) Engine

운영 지식 검색: 쿼리 임베딩 → 유사도 검색 → 임계값 필터 → 복합 점수 재순위화
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from opsrag.common.exceptions import ValidationError
from opsrag.config.models import RetrievalConfig
from opsrag.knowledge.embedder import EmbeddingProvider
from opsrag.knowledge.models import KnowledgeEntry, RiskLevel
from opsrag.knowledge.vector_store import QueryResult, VectorStore

from .scoring import RelevanceScorer

logger = structlog.get_logger(__name__)


@dataclass
class RankedEntry:
    """검색된 지식 항목 + 점수"""
    id: str
    intent: str
    description: str
    keywords: List[str]
    command_template: str
    parameters: List[Dict[str, Any]]
    risk_level: str
    category: str
    examples: List[str]
    similarity: float
    distance: float
    document: str
    keyword_score: float = 0.0
    description_score: float = 0.0
    relevance_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "intent": self.intent,
            "description": self.description,
            "keywords": list(self.keywords),
            "command_template": self.command_template,
            "parameters": list(self.parameters),
            "risk_level": self.risk_level,
            "category": self.category,
            "examples": list(self.examples),
            "similarity": self.similarity,
            "distance": self.distance,
            "document": self.document,
            "keyword_score": self.keyword_score,
            "description_score": self.description_score,
            "relevance_score": self.relevance_score,
        }


@dataclass
class SearchResult:
    """검색 결과"""
    query: str
    results: List[RankedEntry] = field(default_factory=list)
    total_found: int = 0
    threshold: float = 0.0
    top_k: int = 0
    category: Optional[str] = None
    risk_level: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "total_found": self.total_found,
            "threshold": self.threshold,
            "top_k": self.top_k,
        }
        if self.category is not None:
            data["category"] = self.category
        if self.risk_level is not None:
            data["risk_level"] = self.risk_level
        return data


@dataclass
class Recommendation:
    """추천 항목 (점수 없음)"""
    id: str
    intent: str
    description: str
    category: str
    risk_level: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "intent": self.intent,
            "description": self.description,
            "category": self.category,
            "risk_level": self.risk_level,
        }


class RetrievalEngine:
    """
    지식 검색 엔진

    1. 쿼리 임베딩 (실패는 그대로 전달)
    2. VectorStore top-k 검색 (범위 검색이면 where 필터 먼저 적용)
    3. similarity = 1 - distance, threshold 미만은 제외 (하드 컷오프)
    4. 복합 관련도 계산 후 내림차순 stable 정렬
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        config: Optional[RetrievalConfig] = None,
        metrics=None,
        enable_query_logging: bool = False,
        enable_performance_logging: bool = False,
    ):
        """
        Args:
            store: VectorStore 인스턴스
            embedder: 임베딩 제공자
            config: 검색 설정 (기본값/한계값/가중치)
            metrics: RAGMetrics (선택)
            enable_query_logging: 검색어 원문 로깅
            enable_performance_logging: 검색 소요 시간 로깅
        """
        self.store = store
        self.embedder = embedder
        self.config = config or RetrievalConfig()
        self.scorer = RelevanceScorer(self.config.weights)
        self.metrics = metrics
        self.enable_query_logging = enable_query_logging
        self.enable_performance_logging = enable_performance_logging

        # 통계
        self.total_searches = 0
        self.total_results = 0

        logger.info("retrieval_engine_initialized",
                    category="retrieval",
                    default_top_k=self.config.default_top_k,
                    default_threshold=self.config.default_threshold)

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        """
        쿼리에 대한 관련 지식 검색

        Args:
            query: 검색 질문
            top_k: 최대 결과 수 (None이면 기본값, max_top_k 초과 시 잘림)
            threshold: 최소 유사도 (None이면 기본값)

        Raises:
            ValidationError: 빈 쿼리, top_k < 1, 숫자가 아니거나 1.0을 넘는 threshold
            EmbeddingError: 쿼리 임베딩 실패
        """
        return await self._search(query, top_k, threshold, where=None, scope="all")

    async def search_by_category(
        self,
        query: str,
        category: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        """지정한 category 안에서만 검색"""
        result = await self._search(
            query, top_k, threshold,
            where={"category": {"$eq": category}},
            scope="category",
        )
        result.category = category
        return result

    async def search_by_risk_level(
        self,
        query: str,
        risk_level: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        """지정한 위험도 안에서만 검색"""
        try:
            level = RiskLevel(risk_level).value
        except ValueError:
            raise ValidationError(f"riskLevel은 low/medium/high 중 하나여야 합니다: {risk_level!r}")

        result = await self._search(
            query, top_k, threshold,
            where={"risk_level": {"$eq": level}},
            scope="risk_level",
        )
        result.risk_level = level
        return result

    async def recommendations(
        self,
        exclude_intent: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> List[Recommendation]:
        """
        intent가 다른 항목 추천 (저장 순서, 점수 없음)

        Args:
            exclude_intent: 제외할 intent
            top_k: 최대 개수 (None이면 recommendation_top_k)
        """
        limit = self.config.recommendation_top_k if top_k is None else top_k
        if limit < 1:
            raise ValidationError(f"top_k는 1 이상이어야 합니다: {limit}")

        where = {"intent": {"$ne": exclude_intent}} if exclude_intent else None
        snapshot = await self.store.get(where=where, limit=limit)

        recommendations = []
        for entry_id, metadata in zip(snapshot.ids, snapshot.metadatas):
            entry = KnowledgeEntry.from_metadata(entry_id, metadata)
            recommendations.append(Recommendation(
                id=entry_id,
                intent=entry.intent,
                description=entry.description,
                category=entry.category,
                risk_level=entry.risk_level.value,
            ))

        logger.debug("recommendations_completed",
                     category="retrieval",
                     exclude_intent=exclude_intent,
                     results_count=len(recommendations))
        return recommendations

    async def _search(
        self,
        query: str,
        top_k: Optional[int],
        threshold: Optional[float],
        where: Optional[Dict[str, Any]],
        scope: str,
    ) -> SearchResult:
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("검색어가 비어 있습니다")
        effective_top_k, effective_threshold = self._resolve_params(top_k, threshold)

        start = time.perf_counter()

        # 1. 쿼리 임베딩
        query_embedding = await self.embedder.embed(query)

        # 2. Vector Store 검색
        raw = await self.store.query(query_embedding, effective_top_k, where=where)

        # 3. 임계값 필터 + 4. 복합 점수
        results = self._rank(query, raw, effective_threshold)

        elapsed = time.perf_counter() - start
        self.total_searches += 1
        self.total_results += len(results)
        if self.metrics is not None:
            self.metrics.record_search(scope, elapsed, len(results))

        log_fields = {
            "category": "retrieval",
            "scope": scope,
            "top_k": effective_top_k,
            "threshold": effective_threshold,
            "candidates": len(raw),
            "results_count": len(results),
        }
        if self.enable_query_logging:
            log_fields["query"] = query
        if self.enable_performance_logging:
            log_fields["elapsed_ms"] = round(elapsed * 1000, 2)
        logger.info("knowledge_search_completed", **log_fields)

        return SearchResult(
            query=query,
            results=results,
            total_found=len(results),
            threshold=effective_threshold,
            top_k=effective_top_k,
        )

    def _resolve_params(self, top_k: Optional[int], threshold: Optional[float]):
        top_k = self.config.default_top_k if top_k is None else top_k
        threshold = self.config.default_threshold if threshold is None else threshold

        if top_k < 1:
            raise ValidationError(f"top_k는 1 이상이어야 합니다: {top_k}")
        if top_k > self.config.max_top_k:
            logger.debug("top_k_clamped", category="retrieval", requested=top_k, max_top_k=self.config.max_top_k)
            top_k = self.config.max_top_k

        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValidationError(f"threshold는 숫자여야 합니다: {threshold!r}")
        if threshold > 1.0:
            raise ValidationError(f"threshold는 1.0 이하여야 합니다: {threshold}")
        return top_k, threshold

    def _rank(self, query: str, raw: QueryResult, threshold: float) -> List[RankedEntry]:
        ranked = []
        for entry_id, document, metadata, distance in zip(
            raw.ids, raw.documents, raw.metadatas, raw.distances
        ):
            similarity = 1.0 - distance
            if similarity < threshold:
                continue

            entry = KnowledgeEntry.from_metadata(entry_id, metadata)
            breakdown = self.scorer.score(query, similarity, entry.keywords, entry.description)
            ranked.append(RankedEntry(
                id=entry_id,
                intent=entry.intent,
                description=entry.description,
                keywords=entry.keywords,
                command_template=entry.command_template,
                parameters=[p.to_dict() for p in entry.parameters],
                risk_level=entry.risk_level.value,
                category=entry.category,
                examples=entry.examples,
                similarity=similarity,
                distance=distance,
                document=document,
                keyword_score=breakdown.keyword_score,
                description_score=breakdown.description_score,
                relevance_score=breakdown.relevance_score,
            ))

        # list.sort는 stable: 동점이면 유사도 순서 유지
        ranked.sort(key=lambda r: r.relevance_score, reverse=True)
        return ranked

    def get_stats(self) -> dict:
        """검색 통계 반환"""
        avg_results = (
            self.total_results / self.total_searches
            if self.total_searches > 0 else 0
        )

        return {
            "total_searches": self.total_searches,
            "total_results": self.total_results,
            "avg_results_per_search": avg_results,
            "default_top_k": self.config.default_top_k,
            "default_threshold": self.config.default_threshold,
        }
