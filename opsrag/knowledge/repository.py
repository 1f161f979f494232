"""Knowledge Repository

VectorStore와 EmbeddingProvider를 묶어 운영 지식 항목을 관리한다.
모든 추가/수정은 정규 문서 텍스트를 다시 만들고 다시 임베딩한다.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog

from opsrag.common.exceptions import NotFoundError

from .embedder import EmbeddingProvider
from .models import KnowledgeEntry, build_document_text
from .seed_data import default_entries
from .vector_store import VectorStore

logger = structlog.get_logger(__name__)

EntryInput = Union[KnowledgeEntry, Dict[str, Any]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class KnowledgeRepository:
    """지식 저장소

    VectorStore 위의 도메인 계층: 검증, 문서 텍스트 생성, 임베딩, 기본 지식 투입.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        auto_initialize: bool = True,
        metrics=None,
    ):
        """초기화

        Args:
            store: VectorStore 인스턴스
            embedder: 임베딩 제공자
            auto_initialize: 빈 저장소에 기본 지식 투입 여부
            metrics: RAGMetrics (선택)
        """
        self.store = store
        self.embedder = embedder
        self.auto_initialize = auto_initialize
        self.metrics = metrics
        self._init_lock = asyncio.Lock()

    async def initialize(self, seed: Optional[bool] = None) -> None:
        """저장소 로드 후, 비어 있으면 기본 지식 투입

        여러 번 호출해도 안전하다 (항목이 하나라도 있으면 다시 투입하지 않음).

        Args:
            seed: 기본 지식 투입 여부 (None이면 auto_initialize 설정을 따름)
        """
        should_seed = self.auto_initialize if seed is None else seed

        async with self._init_lock:
            if not self.store.is_ready():
                await self.store.initialize()

            count = await self.store.count()
            if should_seed and count == 0:
                logger.info("knowledge_base_empty_seeding", category="knowledge")
                ids = await self.add_many(default_entries())
                logger.info("knowledge_base_seeded", category="knowledge", count=len(ids))
            else:
                await self._refresh_gauge()

        logger.info("knowledge_repository_initialized", category="knowledge", count=await self.store.count())

    async def add(self, entry: EntryInput) -> str:
        """지식 항목 추가

        Returns:
            새 항목 ID

        Raises:
            ValidationError: intent/description 누락
            EmbeddingError: 임베딩 실패 (이 경우 아무것도 저장되지 않음)
        """
        entry = self._coerce(entry)
        entry.validate()

        document = build_document_text(entry)
        embedding = await self.embedder.embed(document)

        now = _now()
        stored = replace(entry, created_at=now, updated_at=now)
        ids = await self.store.add_documents(
            documents=[document],
            embeddings=[embedding],
            metadatas=[stored.to_metadata()],
        )

        self._record_mutation("add")
        await self._refresh_gauge()
        logger.info("knowledge_added", category="knowledge", entry_id=ids[0], intent=entry.intent)
        return ids[0]

    async def add_many(self, entries: List[EntryInput]) -> List[str]:
        """여러 항목을 배치 임베딩 후 한 번에 저장"""
        coerced = [self._coerce(e) for e in entries]
        for entry in coerced:
            entry.validate()
        if not coerced:
            return []

        documents = [build_document_text(e) for e in coerced]
        embeddings = await self.embedder.embed_batch(documents)

        now = _now()
        metadatas = [replace(e, created_at=now, updated_at=now).to_metadata() for e in coerced]
        ids = await self.store.add_documents(documents=documents, embeddings=embeddings, metadatas=metadatas)

        self._record_mutation("add", len(ids))
        await self._refresh_gauge()
        logger.info("knowledge_added_batch", category="knowledge", count=len(ids))
        return ids

    async def update(self, entry_id: str, entry: EntryInput) -> KnowledgeEntry:
        """지식 항목 수정

        새 필드 값으로 문서 텍스트와 임베딩을 다시 만든다. created_at은 유지한다.

        Raises:
            NotFoundError: ID가 없는 경우
            ValidationError: intent/description 누락
        """
        existing = await self.get(entry_id)

        entry = self._coerce(entry)
        entry.validate()

        document = build_document_text(entry)
        embedding = await self.embedder.embed(document)

        updated = entry.with_identity(
            entry_id=entry_id,
            created_at=existing.created_at or _now(),
            updated_at=_now(),
        )
        await self.store.update(entry_id, document, embedding, updated.to_metadata())

        self._record_mutation("update")
        logger.info("knowledge_updated", category="knowledge", entry_id=entry_id, intent=updated.intent)
        return updated

    async def delete(self, entry_id: str) -> None:
        """지식 항목 삭제

        Raises:
            NotFoundError: ID가 없는 경우
        """
        await self.store.delete(entry_id)

        self._record_mutation("delete")
        await self._refresh_gauge()
        logger.info("knowledge_deleted", category="knowledge", entry_id=entry_id)

    async def get(self, entry_id: str) -> KnowledgeEntry:
        """ID로 단일 항목 조회

        Raises:
            NotFoundError: ID가 없는 경우
        """
        snapshot = await self.store.get(ids=[entry_id])
        if not snapshot.ids:
            raise NotFoundError(f"지식 항목을 찾을 수 없습니다: {entry_id}", entry_id=entry_id)
        return KnowledgeEntry.from_metadata(snapshot.ids[0], snapshot.metadatas[0])

    async def list(self) -> List[KnowledgeEntry]:
        """전체 항목 (저장 순서)"""
        snapshot = await self.store.get_all()
        return [
            KnowledgeEntry.from_metadata(entry_id, metadata)
            for entry_id, metadata in zip(snapshot.ids, snapshot.metadatas)
        ]

    async def count(self) -> int:
        return await self.store.count()

    @staticmethod
    def _coerce(entry: EntryInput) -> KnowledgeEntry:
        if isinstance(entry, KnowledgeEntry):
            return entry
        return KnowledgeEntry.from_dict(entry)

    def _record_mutation(self, operation: str, amount: int = 1) -> None:
        if self.metrics is not None:
            self.metrics.record_mutation(operation, amount)

    async def _refresh_gauge(self) -> None:
        if self.metrics is not None:
            self.metrics.set_knowledge_entries(await self.store.count())
