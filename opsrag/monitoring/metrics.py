"""Prometheus Metrics

지식 검색 엔진 모니터링을 위한 Prometheus 메트릭 정의 및 수집
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from typing import Optional
import threading

from opsrag.common.logger import get_logger

logger = get_logger(__name__)


class RAGMetrics:
    """Prometheus 메트릭 관리자

    인스턴스마다 자체 CollectorRegistry를 가지므로 여러 개를 만들어도 충돌하지 않는다.
    프로세스 기본 인스턴스는 get_metrics()로 얻는다.
    """

    def __init__(self):
        """메트릭 초기화"""
        self.registry = CollectorRegistry()

        # ===== 검색 메트릭 =====
        self.searches_total = Counter(
            'rag_searches_total',
            'Total knowledge searches',
            ['scope'],
            registry=self.registry
        )

        self.search_duration_seconds = Histogram(
            'rag_search_duration_seconds',
            'Knowledge search latency in seconds (embedding included)',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
            registry=self.registry
        )

        self.search_results = Histogram(
            'rag_search_results',
            'Number of results returned per search after threshold filtering',
            buckets=[0, 1, 2, 3, 5, 10],
            registry=self.registry
        )

        # ===== 임베딩 메트릭 =====
        self.embedding_errors_total = Counter(
            'rag_embedding_errors_total',
            'Total embedding provider failures',
            ['provider'],
            registry=self.registry
        )

        # ===== 지식 베이스 메트릭 =====
        self.knowledge_mutations_total = Counter(
            'rag_knowledge_mutations_total',
            'Total knowledge base mutations',
            ['operation'],
            registry=self.registry
        )

        self.knowledge_entries = Gauge(
            'rag_knowledge_entries',
            'Current number of knowledge entries',
            registry=self.registry
        )

        logger.debug("rag_metrics_initialized")

    def record_search(self, scope: str, duration_seconds: float, result_count: int):
        """검색 기록

        Args:
            scope: 검색 범위 (all, category, risk_level)
            duration_seconds: 소요 시간 (초)
            result_count: 임계값 필터 후 결과 수
        """
        self.searches_total.labels(scope=scope).inc()
        self.search_duration_seconds.observe(duration_seconds)
        self.search_results.observe(result_count)

    def record_embedding_error(self, provider: str):
        """임베딩 실패 기록"""
        self.embedding_errors_total.labels(provider=provider).inc()

    def record_mutation(self, operation: str, amount: int = 1):
        """지식 변경 기록

        Args:
            operation: add, update, delete
            amount: 변경 건수
        """
        self.knowledge_mutations_total.labels(operation=operation).inc(amount)

    def set_knowledge_entries(self, count: int):
        self.knowledge_entries.set(count)

    # ===== 메트릭 출력 =====

    def export(self) -> str:
        """Prometheus 텍스트 형식으로 메트릭 생성"""
        return generate_latest(self.registry).decode("utf-8")

    def get_content_type(self) -> str:
        """Content-Type 헤더 반환"""
        return CONTENT_TYPE_LATEST


_default_metrics: Optional[RAGMetrics] = None
_default_lock = threading.Lock()


def get_metrics() -> RAGMetrics:
    """프로세스 기본 메트릭 인스턴스 조회

    Returns:
        RAGMetrics 인스턴스
    """
    global _default_metrics
    if _default_metrics is None:
        with _default_lock:
            if _default_metrics is None:
                _default_metrics = RAGMetrics()
    return _default_metrics
