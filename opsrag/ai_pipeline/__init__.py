"""
AI Pipeline

지식 검색 엔진과 관련도 점수 계산
"""

from .rag_engine import RetrievalEngine, RankedEntry, SearchResult, Recommendation
from .scoring import RelevanceScorer, ScoreBreakdown

__all__ = [
    "RetrievalEngine",
    "RankedEntry",
    "SearchResult",
    "Recommendation",
    "RelevanceScorer",
    "ScoreBreakdown",
]
