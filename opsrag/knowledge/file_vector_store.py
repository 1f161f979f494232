"""
File Vector Store

JSON 파일 하나에 전체 컬렉션을 저장하는 정확한(brute-force) 벡터 저장소.
수백~수천 건 규모를 전제로 매 쿼리마다 모든 벡터와 코사인 유사도를 계산한다.
"""

import asyncio
import json
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import structlog

from opsrag.common.exceptions import (
    DimensionMismatchError,
    NotFoundError,
    NotInitializedError,
    PersistenceError,
    ValidationError,
)
from opsrag.common.rwlock import ReadWriteLock

from .vector_store import QueryResult, StoreSnapshot, VectorStore, matches_where

logger = structlog.get_logger(__name__)

DEFAULT_PERSIST_PATH = "./data/vector_store.json"


@dataclass
class _Record:
    document: str
    embedding: List[float]
    metadata: Dict[str, Any]


class FileVectorStore(VectorStore):
    """
    파일 기반 Vector Store

    - 레코드는 id → _Record 딕셔너리에 보관하며, 딕셔너리 삽입 순서가 저장 순서이다.
    - 변경은 복사본에 적용 → 파일 flush 성공 → 메모리 교체 순서로 반영된다.
      flush가 실패하면 메모리와 디스크 모두 이전 상태로 남는다.
    - 조회끼리는 동시에 실행되고, 변경은 다른 모든 조회/변경과 배타적이다.
    """

    def __init__(
        self,
        persist_path: str = DEFAULT_PERSIST_PATH,
        dimension: Optional[int] = None,
    ):
        """
        Args:
            persist_path: 저장 파일 경로
            dimension: 고정 임베딩 차원 (None이면 첫 레코드로 결정)
        """
        self.persist_path = Path(persist_path)
        self._configured_dimension = dimension
        self._dimension: Optional[int] = dimension
        self._records: Dict[str, _Record] = {}
        self._ready = False
        self._lock = ReadWriteLock()

        # 통계
        self.total_upserts = 0
        self.total_deletes = 0
        self.total_queries = 0
        self.total_flushes = 0

    # -----------------------------------------------------------------
    # 라이프사이클
    # -----------------------------------------------------------------

    async def initialize(self) -> None:
        """저장 파일 로드 (이미 로드되었으면 무시)"""
        async with self._lock.write():
            if self._ready:
                logger.debug("vector_store_already_initialized", category="store")
                return

            loop = asyncio.get_running_loop()
            payload = await loop.run_in_executor(None, self._read_file)
            records, dimension = self._decode_payload(payload)

            self._records = records
            self._dimension = dimension
            self._ready = True

        logger.info("vector_store_initialized",
                    category="store",
                    path=str(self.persist_path),
                    count=len(self._records),
                    dimension=self._dimension)

    async def shutdown(self) -> None:
        """저장소 종료. 이후 호출은 NotInitializedError (initialize()로 재로드 가능)"""
        async with self._lock.write():
            if not self._ready:
                return
            self._ready = False
            self._records = {}
            self._dimension = self._configured_dimension
        logger.info("vector_store_shutdown", category="store")

    def is_ready(self) -> bool:
        return self._ready

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _ensure_ready(self) -> None:
        if not self._ready:
            raise NotInitializedError("vector store가 초기화되지 않았습니다. initialize()를 먼저 호출하세요.")

    # -----------------------------------------------------------------
    # 변경
    # -----------------------------------------------------------------

    async def upsert(
        self,
        ids: List[str],
        documents: List[str],
        embeddings: List[List[float]],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        """레코드 저장 또는 교체 (같은 ID는 기존 위치 유지)"""
        async with self._lock.write():
            self._ensure_ready()
            await self._commit_upsert(ids, documents, embeddings, metadatas)

        logger.debug("vector_store_upserted", category="store", count=len(ids))

    async def add_documents(
        self,
        documents: List[str],
        embeddings: List[List[float]],
        metadatas: List[Dict[str, Any]],
        ids: Optional[List[str]] = None,
    ) -> List[str]:
        """레코드 추가. ids가 없으면 uuid4로 생성"""
        if ids is None:
            ids = [str(uuid.uuid4()) for _ in documents]
        await self.upsert(ids, documents, embeddings, metadatas)
        return list(ids)

    async def update(
        self,
        record_id: str,
        document: str,
        embedding: List[float],
        metadata: Dict[str, Any],
    ) -> None:
        """기존 레코드 교체

        Raises:
            NotFoundError: ID가 없는 경우
        """
        async with self._lock.write():
            self._ensure_ready()
            if record_id not in self._records:
                raise NotFoundError(f"레코드를 찾을 수 없습니다: {record_id}", entry_id=record_id)
            await self._commit_upsert([record_id], [document], [embedding], [metadata])

        logger.debug("vector_store_updated", category="store", entry_id=record_id)

    async def delete(self, record_id: str) -> None:
        """레코드 삭제

        Raises:
            NotFoundError: ID가 없는 경우
        """
        async with self._lock.write():
            self._ensure_ready()
            if record_id not in self._records:
                raise NotFoundError(f"레코드를 찾을 수 없습니다: {record_id}", entry_id=record_id)

            records = dict(self._records)
            del records[record_id]
            await self._flush(records)
            self._records = records
            self.total_deletes += 1

        logger.debug("vector_store_deleted", category="store", entry_id=record_id)

    async def _commit_upsert(
        self,
        ids: List[str],
        documents: List[str],
        embeddings: List[List[float]],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        """쓰기 락 안에서 호출: 검증 → 복사본 변경 → flush → 교체"""
        if not (len(ids) == len(documents) == len(embeddings) == len(metadatas)):
            raise ValidationError(
                "ids/documents/embeddings/metadatas 길이가 다릅니다: "
                f"{len(ids)}/{len(documents)}/{len(embeddings)}/{len(metadatas)}"
            )
        if not ids:
            return

        dimension = self._dimension
        vectors = []
        for embedding in embeddings:
            vector = self._to_vector(embedding)
            if dimension is None:
                dimension = len(vector)
            elif len(vector) != dimension:
                raise DimensionMismatchError(expected=dimension, actual=len(vector))
            vectors.append(vector)

        records = dict(self._records)
        for record_id, document, vector, metadata in zip(ids, documents, vectors, metadatas):
            if not isinstance(record_id, str) or not record_id:
                raise ValidationError(f"잘못된 레코드 ID: {record_id!r}")
            records[record_id] = _Record(
                document=document,
                embedding=vector,
                metadata=dict(metadata or {}),
            )

        await self._flush(records)
        self._records = records
        self._dimension = dimension
        self.total_upserts += len(ids)

    @staticmethod
    def _to_vector(embedding: List[float]) -> List[float]:
        try:
            vector = [float(x) for x in embedding]
        except (TypeError, ValueError):
            raise ValidationError("임베딩은 숫자 리스트여야 합니다")
        if not vector:
            raise ValidationError("빈 임베딩은 저장할 수 없습니다")
        return vector

    # -----------------------------------------------------------------
    # 조회
    # -----------------------------------------------------------------

    async def query(
        self,
        embedding: List[float],
        k: int,
        where: Optional[Dict[str, Any]] = None,
    ) -> QueryResult:
        """코사인 유사도 상위 k개 (동점은 저장 순서 유지)

        Raises:
            NotInitializedError: 로드 전 호출
            DimensionMismatchError: 쿼리 벡터 차원이 저장소 차원과 다른 경우
        """
        async with self._lock.read():
            self._ensure_ready()
            query_vector = self._to_vector(embedding)
            if self._dimension is not None and len(query_vector) != self._dimension:
                raise DimensionMismatchError(expected=self._dimension, actual=len(query_vector))

            self.total_queries += 1
            candidates = [
                (record_id, record)
                for record_id, record in self._records.items()
                if matches_where(record.metadata, where)
            ]
            if k <= 0 or not candidates:
                return QueryResult()

            similarities = cosine_similarities(
                query_vector, [record.embedding for _, record in candidates]
            )
            # 내림차순 + stable 정렬 → 동점은 저장 순서
            order = np.argsort(-similarities, kind="stable")[:k]

            result = QueryResult()
            for index in order:
                record_id, record = candidates[int(index)]
                result.ids.append(record_id)
                result.documents.append(record.document)
                result.metadatas.append(dict(record.metadata))
                result.distances.append(1.0 - float(similarities[index]))

        logger.debug("vector_store_queried",
                     category="store",
                     k=k,
                     candidates=len(candidates),
                     results_count=len(result))
        return result

    async def get(
        self,
        ids: Optional[List[str]] = None,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> StoreSnapshot:
        """저장 순서대로 레코드 조회 (임베딩 제외, 없는 ID는 건너뜀)"""
        async with self._lock.read():
            self._ensure_ready()
            wanted = set(ids) if ids is not None else None

            snapshot = StoreSnapshot()
            for record_id, record in self._records.items():
                if limit is not None and len(snapshot) >= limit:
                    break
                if wanted is not None and record_id not in wanted:
                    continue
                if not matches_where(record.metadata, where):
                    continue
                snapshot.ids.append(record_id)
                snapshot.documents.append(record.document)
                snapshot.metadatas.append(dict(record.metadata))
            return snapshot

    async def count(self, where: Optional[Dict[str, Any]] = None) -> int:
        async with self._lock.read():
            self._ensure_ready()
            if not where:
                return len(self._records)
            return sum(1 for r in self._records.values() if matches_where(r.metadata, where))

    def get_stats(self) -> Dict:
        """통계 반환"""
        return {
            "type": "file",
            "persist_path": str(self.persist_path),
            "ready": self._ready,
            "dimension": self._dimension,
            "total_documents": len(self._records),
            "total_upserts": self.total_upserts,
            "total_deletes": self.total_deletes,
            "total_queries": self.total_queries,
            "total_flushes": self.total_flushes,
        }

    # -----------------------------------------------------------------
    # 영속화
    # -----------------------------------------------------------------

    async def _flush(self, records: Dict[str, _Record]) -> None:
        payload = {
            "ids": list(records.keys()),
            "documents": [r.document for r in records.values()],
            "embeddings": [r.embedding for r in records.values()],
            "metadatas": [r.metadata for r in records.values()],
        }
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_file, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.error("vector_store_flush_failed",
                         category="store",
                         path=str(self.persist_path),
                         error=str(e))
            raise PersistenceError(f"저장 파일 쓰기 실패: {self.persist_path}: {e}") from e
        self.total_flushes += 1

    def _write_file(self, payload: Dict[str, Any]) -> None:
        """임시 파일에 기록 → fsync → os.replace (원자적 교체)"""
        directory = self.persist_path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.persist_path.name}.", suffix=".tmp", dir=str(directory)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.persist_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _read_file(self) -> Optional[Dict[str, Any]]:
        if not self.persist_path.exists():
            return None
        try:
            with open(self.persist_path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise PersistenceError(f"저장 파일 읽기 실패: {self.persist_path}: {e}") from e

        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("vector_store_file_corrupt",
                         category="store",
                         path=str(self.persist_path),
                         error=str(e))
            raise PersistenceError(f"저장 파일이 손상되었습니다: {self.persist_path}: {e}") from e

    def _decode_payload(self, payload: Optional[Dict[str, Any]]):
        """파일 내용 → (records, dimension). 형식 오류는 PersistenceError"""
        dimension = self._configured_dimension
        if payload is None:
            return {}, dimension
        if not isinstance(payload, dict):
            raise PersistenceError(f"저장 파일 형식 오류: {self.persist_path}")

        ids = payload.get("ids") or []
        documents = payload.get("documents") or []
        embeddings = payload.get("embeddings") or []
        metadatas = payload.get("metadatas") or []
        if not (len(ids) == len(documents) == len(embeddings) == len(metadatas)):
            raise PersistenceError(
                f"저장 파일의 컬렉션 길이가 다릅니다: {self.persist_path}"
            )

        records: Dict[str, _Record] = {}
        for record_id, document, embedding, metadata in zip(ids, documents, embeddings, metadatas):
            if record_id in records:
                raise PersistenceError(f"저장 파일에 중복 ID가 있습니다: {record_id}")
            try:
                vector = self._to_vector(embedding)
            except ValidationError as e:
                raise PersistenceError(f"저장 파일의 임베딩 오류 ({record_id}): {e}") from e
            if dimension is None:
                dimension = len(vector)
            elif len(vector) != dimension:
                raise PersistenceError(
                    f"저장 파일의 임베딩 차원 불일치 ({record_id}): expected {dimension}, got {len(vector)}"
                )
            records[record_id] = _Record(document=document, embedding=vector, metadata=metadata or {})

        return records, dimension


def cosine_similarities(query: List[float], vectors: List[List[float]]) -> np.ndarray:
    """query와 각 벡터의 코사인 유사도. 어느 한쪽 norm이 0이면 0"""
    matrix = np.asarray(vectors, dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)

    dots = matrix @ q
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)

    similarities = np.zeros(len(vectors), dtype=np.float64)
    nonzero = norms > 0
    similarities[nonzero] = dots[nonzero] / norms[nonzero]
    return np.clip(similarities, -1.0, 1.0)
