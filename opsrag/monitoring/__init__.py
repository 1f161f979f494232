"""모니터링 (Prometheus 메트릭)"""

from .metrics import RAGMetrics, get_metrics

__all__ = ["RAGMetrics", "get_metrics"]
