"""
System Unit Tests - RAGSystem

조립, 응답 envelope, 상태, 지식 관리 위임 테스트
"""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from opsrag import RAGSystem
from opsrag.common.exceptions import EmbeddingError
from opsrag.config.models import Config
from opsrag.knowledge.embedder import HttpEmbedder, SimpleEmbedder
from opsrag.knowledge.models import build_document_text
from opsrag.knowledge.seed_data import DEFAULT_KNOWLEDGE, default_entries
from opsrag.monitoring.metrics import RAGMetrics


@pytest.fixture
def config(store_path):
    return Config(store={"persist_path": store_path}, knowledge={"auto_initialize": True})


@pytest_asyncio.fixture
async def rag(config, fake_embedder):
    # 시드 항목 0번(server:check_status) 문서와 같은 벡터를 쿼리에 매핑
    seed_vector = await fake_embedder.embed(build_document_text(default_entries()[0]))
    fake_embedder.vectors["支付服务挂了没"] = seed_vector

    system = RAGSystem(config=config, embedder=fake_embedder, metrics=RAGMetrics())
    await system.initialize()
    yield system
    await system.shutdown()


class TestQueryEnvelope:
    """query() 응답 형식 테스트"""

    @pytest.mark.asyncio
    async def test_success_envelope(self, rag):
        """
        Given: 기본 지식이 투입된 시스템
        When: "支付服务挂了没" 질의
        Then: success=True, 최상위 결과는 server:check_status
        """
        response = await rag.query("支付服务挂了没")

        assert response["success"] is True
        assert response["query"] == "支付服务挂了没"
        assert "timestamp" in response
        knowledge = response["relevant_knowledge"]
        assert knowledge["total_found"] >= 1
        assert knowledge["results"][0]["intent"] == "server:check_status"
        assert knowledge["results"][0]["similarity"] == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_validation_failure_envelope(self, rag):
        response = await rag.query("   ")

        assert response["success"] is False
        assert response["error"]
        assert "relevant_knowledge" not in response

    @pytest.mark.asyncio
    async def test_embedding_failure_envelope(self, rag, fake_embedder):
        """임베딩 실패도 예외 대신 envelope"""
        fake_embedder.embed = AsyncMock(side_effect=EmbeddingError("provider down", provider="fake"))

        response = await rag.query("支付服务挂了没")

        assert response["success"] is False
        assert "provider down" in response["error"]


class TestLifecycle:
    """초기화/종료 테스트"""

    @pytest.mark.asyncio
    async def test_status(self, rag):
        status = await rag.status()

        assert status["initialized"] is True
        assert status["store_ready"] is True
        assert status["knowledge_count"] == len(DEFAULT_KNOWLEDGE)
        assert status["embedding_model"] == "fake-model"
        assert status["embedding_dimension"] == 8

    @pytest.mark.asyncio
    async def test_initialize_idempotent(self, rag):
        await rag.initialize()

        assert len(await rag.list_knowledge()) == len(DEFAULT_KNOWLEDGE)

    @pytest.mark.asyncio
    async def test_context_manager(self, config, fake_embedder):
        """async with 종료 시 임베더와 저장소 정리"""
        async with RAGSystem(config=config, embedder=fake_embedder, metrics=RAGMetrics()) as system:
            assert system.initialized is True

        assert system.initialized is False
        assert fake_embedder.closed is True
        status = await system.status()
        assert status["store_ready"] is False
        assert status["knowledge_count"] == 0

    def test_from_config_path(self, temp_config_file):
        """YAML 경로로 생성 (초기화 전에는 파일 접근 없음)"""
        system = RAGSystem.from_config(temp_config_file, metrics=RAGMetrics())

        assert isinstance(system.embedder, SimpleEmbedder)
        assert system.embedder.dimension == 64
        assert system.repository.auto_initialize is False
        assert system.initialized is False

    def test_from_config_defaults(self):
        system = RAGSystem.from_config(None, metrics=RAGMetrics())

        assert isinstance(system.embedder, HttpEmbedder)
        assert system.engine.config.default_top_k == 3


class TestDelegation:
    """검색/지식 관리 위임 테스트"""

    @pytest.mark.asyncio
    async def test_knowledge_management(self, rag):
        entry_id = await rag.add_knowledge({
            "intent": "server:check_cpu",
            "description": "检查服务器CPU使用情况",
            "category": "monitoring",
        })

        updated = await rag.update_knowledge(entry_id, {
            "intent": "server:check_cpu",
            "description": "查看CPU负载",
            "category": "monitoring",
        })
        assert updated.id == entry_id
        assert len(await rag.list_knowledge()) == len(DEFAULT_KNOWLEDGE) + 1

        await rag.delete_knowledge(entry_id)
        assert len(await rag.list_knowledge()) == len(DEFAULT_KNOWLEDGE)

    @pytest.mark.asyncio
    async def test_scoped_search_and_recommendations(self, rag):
        result = await rag.search_by_risk_level("支付服务挂了没", "low", threshold=0.3)
        assert all(r.risk_level == "low" for r in result.results)

        category_result = await rag.search_by_category("支付服务挂了没", "operation", threshold=0.3)
        assert all(r.category == "operation" for r in category_result.results)

        recommendations = await rag.recommendations("server:check_status")
        assert "server:check_status" not in [r.intent for r in recommendations]
        assert len(recommendations) == len(DEFAULT_KNOWLEDGE) - 1
