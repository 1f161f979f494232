"""pytest 설정 파일

공통 fixtures 및 테스트 설정
"""

import hashlib
import math
import pytest
import tempfile
import yaml
from pathlib import Path
from typing import Dict, List

from opsrag.common.logger import setup_logging
from opsrag.knowledge.embedder import EmbeddingProvider


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """테스트용 로깅 설정"""
    setup_logging(level="DEBUG", format_type="text")


class FakeEmbedder(EmbeddingProvider):
    """테스트용 결정적 임베더

    vectors에 등록된 텍스트는 해당 벡터를, 그 외 텍스트는 해시 기반 단위 벡터를 반환한다.
    같은 텍스트는 항상 같은 벡터이므로 유사도 1.0이 된다.
    """

    provider_name = "fake"

    def __init__(self, dimension: int = 8, vectors: Dict[str, List[float]] = None):
        self._dimension = dimension
        self.vectors = dict(vectors or {})
        self.calls: List[str] = []
        self.closed = False

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if text in self.vectors:
            return list(self.vectors[text])
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        raw = [(digest[i] - 127.5) for i in range(self._dimension)]
        norm = math.sqrt(sum(v * v for v in raw))
        return [v / norm for v in raw]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [await self.embed(t) for t in texts]

    def get_stats(self) -> dict:
        return {"embedder_type": self.provider_name, "calls": len(self.calls)}

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_embedder():
    """결정적 임베더 fixture"""
    return FakeEmbedder()


@pytest.fixture
def store_path(tmp_path):
    """벡터 저장 파일 경로"""
    return str(tmp_path / "data" / "vector_store.json")


@pytest.fixture
def temp_config_file():
    """임시 설정 파일 fixture"""
    config_data = {
        "embedding": {
            "provider": "simple",
            "dimension": 64,
            "timeout": 10.0,
        },
        "store": {
            "persist_path": "./data/test_vector_store.json",
        },
        "retrieval": {
            "default_top_k": 3,
            "default_threshold": 0.65,
            "max_top_k": 10,
            "min_threshold": 0.3,
        },
        "knowledge": {
            "auto_initialize": False,
        },
        "logging": {
            "level": "INFO",
            "format": "json",
        },
    }

    # 임시 파일 생성
    with tempfile.NamedTemporaryFile(
        mode='w',
        suffix='.yaml',
        delete=False,
        encoding='utf-8'
    ) as f:
        yaml.dump(config_data, f)
        temp_path = f.name

    yield temp_path

    # 정리
    Path(temp_path).unlink(missing_ok=True)


@pytest.fixture
def invalid_config_file():
    """잘못된 설정 파일 fixture"""
    config_data = {
        "embedding": {
            "dimension": 0,  # 1 미만
        },
        "retrieval": {
            "default_top_k": 5,
            "max_top_k": 3,  # max_top_k < default_top_k
        }
    }

    with tempfile.NamedTemporaryFile(
        mode='w',
        suffix='.yaml',
        delete=False,
        encoding='utf-8'
    ) as f:
        yaml.dump(config_data, f)
        temp_path = f.name

    yield temp_path

    Path(temp_path).unlink(missing_ok=True)


@pytest.fixture
def make_embedder():
    """FakeEmbedder 생성 함수 fixture (차원/고정 벡터 지정용)"""
    return FakeEmbedder
