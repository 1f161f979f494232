"""
Relevance Scoring

벡터 유사도 + 키워드 매칭 + 설명 매칭을 합친 복합 관련도 점수
"""

from dataclasses import dataclass
from typing import List, Optional

from opsrag.config.models import ScoringWeights


@dataclass
class ScoreBreakdown:
    """관련도 점수 구성"""
    keyword_score: float
    description_score: float
    relevance_score: float


class RelevanceScorer:
    """
    복합 관련도 계산기

    relevance = w_sim * similarity + w_kw * keyword_score + w_desc * description_score
    결과는 [0, 1]로 자른다.
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def keyword_score(self, query: str, keywords: List[str]) -> float:
        """
        키워드 매칭 점수

        각 키워드(소문자, trim)를 쿼리와 양방향 포함 검사한다.
        완전 일치는 exact_match, 부분 포함은 partial_match 가중치를 더하고
        키워드 개수로 나눈다. 빈 키워드는 점수 없이 개수에만 포함된다.
        """
        if not keywords:
            return 0.0

        query_lower = query.lower().strip()
        total = 0.0
        for keyword in keywords:
            keyword = keyword.lower().strip()
            if not keyword:
                continue
            if keyword == query_lower:
                total += self.weights.exact_match
            elif keyword in query_lower or query_lower in keyword:
                total += self.weights.partial_match

        return total / len(keywords)

    @staticmethod
    def description_score(query: str, description: str) -> float:
        """
        설명 매칭 점수

        쿼리를 공백으로 나눈 단어 중 길이 > 1 이고 설명에 포함된 단어 수 / 전체 단어 수
        """
        words = query.lower().split()
        if not words or not description:
            return 0.0

        description_lower = description.lower()
        matching = sum(1 for word in words if len(word) > 1 and word in description_lower)
        return matching / len(words)

    def score(
        self,
        query: str,
        similarity: float,
        keywords: List[str],
        description: str,
    ) -> ScoreBreakdown:
        keyword_score = self.keyword_score(query, keywords)
        description_score = self.description_score(query, description)

        relevance = (
            self.weights.similarity * similarity +
            self.weights.keyword * keyword_score +
            self.weights.description * description_score
        )
        relevance = max(0.0, min(relevance, 1.0))

        return ScoreBreakdown(
            keyword_score=keyword_score,
            description_score=description_score,
            relevance_score=relevance,
        )
