"""
Vector Store 추상화

운영 지식 벡터 저장소 인터페이스 정의
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from opsrag.common.exceptions import ValidationError


@dataclass
class QueryResult:
    """유사도 검색 결과 (거리 오름차순 = 유사도 내림차순)"""
    ids: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    metadatas: List[Dict[str, Any]] = field(default_factory=list)
    distances: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class StoreSnapshot:
    """저장 순서 그대로의 스냅샷 (임베딩 제외)"""
    ids: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    metadatas: List[Dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)


class VectorStore(ABC):
    """
    Vector Store 추상 인터페이스

    모든 조회/변경은 initialize() 이후에만 가능하다.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """저장소 로드"""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """저장소 종료"""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    async def upsert(
        self,
        ids: List[str],
        documents: List[str],
        embeddings: List[List[float]],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        """
        레코드 저장 또는 교체

        Args:
            ids: 레코드 ID (존재하면 같은 위치에서 교체, 없으면 뒤에 추가)
            documents: 정규 문서 텍스트
            embeddings: 임베딩 벡터
            metadatas: 평면 메타데이터
        """
        pass

    @abstractmethod
    async def add_documents(
        self,
        documents: List[str],
        embeddings: List[List[float]],
        metadatas: List[Dict[str, Any]],
        ids: Optional[List[str]] = None,
    ) -> List[str]:
        """레코드 추가 (ID 미지정 시 생성), 사용된 ID 반환"""
        pass

    @abstractmethod
    async def update(
        self,
        record_id: str,
        document: str,
        embedding: List[float],
        metadata: Dict[str, Any],
    ) -> None:
        """기존 레코드 교체 (없으면 NotFoundError)"""
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """레코드 삭제 (없으면 NotFoundError)"""
        pass

    @abstractmethod
    async def query(
        self,
        embedding: List[float],
        k: int,
        where: Optional[Dict[str, Any]] = None,
    ) -> QueryResult:
        """
        코사인 유사도 상위 k개 검색

        Args:
            embedding: 쿼리 벡터
            k: 반환할 최대 레코드 수
            where: 메타데이터 필터 (유사도 계산 전에 적용)
        """
        pass

    @abstractmethod
    async def get(
        self,
        ids: Optional[List[str]] = None,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> StoreSnapshot:
        """저장 순서대로 레코드 조회"""
        pass

    async def get_all(self) -> StoreSnapshot:
        return await self.get()

    @abstractmethod
    async def count(self, where: Optional[Dict[str, Any]] = None) -> int:
        pass

    @abstractmethod
    def get_stats(self) -> Dict:
        """통계 반환"""
        pass


_OPERATORS = ("$eq", "$ne", "$in", "$nin")


def matches_where(metadata: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    """메타데이터가 where 필터를 만족하는지 검사

    지원 형식:
        {"category": "server"}                       동등 비교
        {"intent": {"$ne": "server:check_status"}}   $eq / $ne / $in / $nin
        {"$and": [{...}, {...}]}                     논리곱

    Raises:
        ValidationError: 알 수 없는 연산자
    """
    if not where:
        return True

    for key, condition in where.items():
        if key == "$and":
            if not all(matches_where(metadata, clause) for clause in condition):
                return False
            continue

        value = metadata.get(key)
        if isinstance(condition, dict):
            for op, expected in condition.items():
                if op not in _OPERATORS:
                    raise ValidationError(f"지원하지 않는 where 연산자: {op}")
                if op == "$eq" and value != expected:
                    return False
                if op == "$ne" and value == expected:
                    return False
                if op == "$in" and value not in expected:
                    return False
                if op == "$nin" and value in expected:
                    return False
        elif value != condition:
            return False

    return True
