"""Prometheus Metrics 테스트"""

import pytest
from prometheus_client import CONTENT_TYPE_LATEST

from opsrag.monitoring.metrics import RAGMetrics, get_metrics


@pytest.fixture
def metrics():
    """독립 레지스트리를 가진 메트릭 인스턴스"""
    return RAGMetrics()


class TestRAGMetrics:
    """RAGMetrics 테스트"""

    def test_instances_are_independent(self):
        """인스턴스마다 별도 레지스트리"""
        metrics1 = RAGMetrics()
        metrics2 = RAGMetrics()

        metrics1.record_mutation("add")

        assert metrics1.registry is not metrics2.registry
        assert 'operation="add"' not in metrics2.export()

    def test_get_metrics(self):
        """get_metrics 함수"""
        metrics1 = get_metrics()
        metrics2 = get_metrics()

        assert metrics1 is metrics2

    def test_metrics_exist(self, metrics):
        """메트릭 존재 확인"""
        assert hasattr(metrics, 'searches_total')
        assert hasattr(metrics, 'search_duration_seconds')
        assert hasattr(metrics, 'search_results')
        assert hasattr(metrics, 'embedding_errors_total')
        assert hasattr(metrics, 'knowledge_mutations_total')
        assert hasattr(metrics, 'knowledge_entries')

    def test_record_search(self, metrics):
        """검색 기록"""
        metrics.record_search("category", 0.12, 2)

        output = metrics.export()
        assert 'rag_searches_total{scope="category"} 1.0' in output
        assert 'rag_search_duration_seconds_count 1.0' in output
        assert 'rag_search_results_sum 2.0' in output

    def test_record_embedding_error(self, metrics):
        metrics.record_embedding_error("http")
        metrics.record_embedding_error("http")

        assert 'rag_embedding_errors_total{provider="http"} 2.0' in metrics.export()

    def test_mutations_and_gauge(self, metrics):
        metrics.record_mutation("add", 5)
        metrics.record_mutation("delete")
        metrics.set_knowledge_entries(4)

        output = metrics.export()
        assert 'rag_knowledge_mutations_total{operation="add"} 5.0' in output
        assert 'rag_knowledge_mutations_total{operation="delete"} 1.0' in output
        assert 'rag_knowledge_entries 4.0' in output

    def test_content_type(self, metrics):
        """Content-Type 확인"""
        assert metrics.get_content_type() == CONTENT_TYPE_LATEST
