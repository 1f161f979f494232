"""
Text Embedder

텍스트를 벡터 임베딩으로 변환하는 제공자(provider)들
"""

import asyncio
import hashlib
import json
import math
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import aiohttp
import structlog

from opsrag.common.exceptions import ConfigurationError, EmbeddingError, EmbeddingTimeoutError
from opsrag.config.models import EmbeddingConfig, EmbeddingProviderType

logger = structlog.get_logger(__name__)


class EmbeddingProvider(ABC):
    """
    임베딩 제공자 인터페이스

    모든 벡터는 설정된 dimension 길이를 가진다.
    실패는 EmbeddingError로 전달하며, 0 벡터로 대체하지 않는다.
    """

    provider_name = "base"

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """단일 텍스트 임베딩"""
        pass

    @abstractmethod
    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """배치 임베딩 (실패 시 일부 결과도 반환하지 않음)"""
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @abstractmethod
    def get_stats(self) -> dict:
        pass

    async def close(self) -> None:
        """보유 리소스 해제 (기본: 없음)"""
        return None


class HttpEmbedder(EmbeddingProvider):
    """
    OpenAI 호환 임베딩 API 클라이언트

    POST {model, input, encoding_format: "float"} → data[*].embedding
    """

    provider_name = "http"

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        model_name: str = "Pro/BAAI/bge-m3",
        dimension: int = 1024,
        timeout: float = 30.0,
        batch_timeout_multiplier: float = 2.0,
        metrics=None,
    ):
        """
        Args:
            api_url: 임베딩 엔드포인트 URL
            api_key: Bearer 토큰 (없으면 Authorization 헤더 생략)
            model_name: 모델 이름
            dimension: 기대 임베딩 차원
            timeout: 단일 요청 타임아웃 (초)
            batch_timeout_multiplier: 배치 요청 타임아웃 배수
            metrics: RAGMetrics (선택)
        """
        self.api_url = api_url
        self.api_key = api_key
        self._model_name = model_name
        self._dimension = dimension
        self.timeout = timeout
        self.batch_timeout_multiplier = batch_timeout_multiplier
        self.metrics = metrics
        self._session: Optional[aiohttp.ClientSession] = None

        # 통계
        self.total_requests = 0
        self.total_embeddings = 0
        self.total_errors = 0

        if not api_key:
            logger.warning("embedding_api_key_missing", provider=self.provider_name, api_url=api_url)

        logger.info("http_embedder_initialized",
                    provider=self.provider_name,
                    model=model_name,
                    dimension=dimension,
                    timeout=timeout)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def embed(self, text: str) -> List[float]:
        vectors = await self._request(text, expected=1, timeout=self.timeout)
        return vectors[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        return await self._request(
            list(texts),
            expected=len(texts),
            timeout=self.timeout * self.batch_timeout_multiplier,
        )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(self, inputs: Any, expected: int, timeout: float) -> List[List[float]]:
        payload = {
            "model": self._model_name,
            "input": inputs,
            "encoding_format": "float",
        }
        self.total_requests += 1
        try:
            data = await self._post(payload, timeout)
            vectors = self._parse_response(data, expected)
        except EmbeddingError as e:
            self.total_errors += 1
            if self.metrics is not None:
                self.metrics.record_embedding_error(self.provider_name)
            logger.error("embedding_request_failed",
                         provider=self.provider_name,
                         status=e.status,
                         input_count=expected,
                         error=str(e))
            raise

        self.total_embeddings += len(vectors)
        return vectors

    async def _post(self, payload: dict, timeout: float) -> Any:
        session = self._get_session()
        try:
            async with session.post(
                self.api_url,
                json=payload,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise EmbeddingError(
                        f"embedding API 오류: HTTP {response.status} {body[:200]}",
                        provider=self.provider_name,
                        status=response.status,
                    )
                try:
                    return await response.json(content_type=None)
                except (json.JSONDecodeError, ValueError) as e:
                    raise EmbeddingError(
                        f"embedding API 응답 파싱 실패: {e}",
                        provider=self.provider_name,
                        status=response.status,
                    ) from e

        except asyncio.TimeoutError as e:
            raise EmbeddingTimeoutError(
                f"embedding API 타임아웃 ({timeout}s)",
                provider=self.provider_name,
            ) from e

        except aiohttp.ClientError as e:
            raise EmbeddingError(
                f"embedding API 연결 실패: {e}",
                provider=self.provider_name,
            ) from e

    def _parse_response(self, data: Any, expected: int) -> List[List[float]]:
        """응답 검증: data 배열, 개수, 숫자 값, 차원"""
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list) or not items:
            raise EmbeddingError("embedding API 응답에 data가 없습니다", provider=self.provider_name)
        if len(items) != expected:
            raise EmbeddingError(
                f"embedding 개수 불일치: expected {expected}, got {len(items)}",
                provider=self.provider_name,
            )

        if all(isinstance(item, dict) and isinstance(item.get("index"), int) for item in items):
            items = sorted(items, key=lambda item: item["index"])

        vectors = []
        for item in items:
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list) or not embedding:
                raise EmbeddingError("embedding API 응답 형식 오류", provider=self.provider_name)
            if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding):
                raise EmbeddingError("embedding 값이 숫자가 아닙니다", provider=self.provider_name)
            if len(embedding) != self._dimension:
                raise EmbeddingError(
                    f"embedding 차원 불일치: expected {self._dimension}, got {len(embedding)}",
                    provider=self.provider_name,
                )
            vectors.append([float(x) for x in embedding])

        return vectors

    def get_stats(self) -> dict:
        """통계 반환"""
        return {
            "embedder_type": self.provider_name,
            "model_name": self._model_name,
            "dimension": self._dimension,
            "total_requests": self.total_requests,
            "total_embeddings": self.total_embeddings,
            "total_errors": self.total_errors,
        }


_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


class SimpleEmbedder(EmbeddingProvider):
    """
    간단한 임베더 (테스트/오프라인용)

    실제 모델 없이 해시 기반 임베딩을 생성합니다.
    단어와 문자 bigram을 해싱해 차원에 누적하므로 같은 텍스트는 항상 같은 벡터가 되고,
    어휘가 겹치는 텍스트끼리는 유사도가 높아진다.
    """

    provider_name = "simple"

    def __init__(self, dimension: int = 1024):
        """
        Args:
            dimension: 임베딩 차원
        """
        self._dimension = dimension
        self.total_embeddings = 0
        logger.info("simple_embedder_initialized", provider=self.provider_name, dimension=dimension)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "simple-hash"

    async def embed(self, text: str) -> List[float]:
        self.total_embeddings += 1
        return self._hash_vector(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """배치 임베딩"""
        return [await self.embed(t) for t in texts]

    def _hash_vector(self, text: str) -> List[float]:
        vector = [0.0] * self._dimension
        lowered = text.lower()

        features = _TOKEN_PATTERN.findall(lowered)
        compact = "".join(lowered.split())
        features.extend(compact[i:i + 2] for i in range(len(compact) - 1))

        for feature in features:
            digest = hashlib.sha256(feature.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "big") % self._dimension
            sign = 1.0 if digest[4] % 2 == 0 else -1.0
            vector[index] += sign

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]

    def get_stats(self) -> dict:
        """통계 반환"""
        return {
            "embedder_type": self.provider_name,
            "dimension": self._dimension,
            "total_embeddings": self.total_embeddings,
        }


def create_embedder(config: EmbeddingConfig, metrics=None) -> EmbeddingProvider:
    """설정에 맞는 임베딩 제공자 생성

    Raises:
        ConfigurationError: 알 수 없는 provider
    """
    provider = getattr(config.provider, "value", config.provider)

    if provider == EmbeddingProviderType.HTTP.value:
        return HttpEmbedder(
            api_url=config.api_url,
            api_key=config.api_key,
            model_name=config.model_name,
            dimension=config.dimension,
            timeout=config.timeout,
            batch_timeout_multiplier=config.batch_timeout_multiplier,
            metrics=metrics,
        )

    if provider == EmbeddingProviderType.LOCAL.value:
        # sentence-transformers는 선택 의존성 (pip install opsrag[local])
        from .local_embedder import LocalEmbedder

        return LocalEmbedder(
            model_name=config.model_name,
            dimension=config.dimension,
            batch_size=config.batch_size,
            device=config.device,
            metrics=metrics,
        )

    if provider == EmbeddingProviderType.SIMPLE.value:
        return SimpleEmbedder(dimension=config.dimension)

    raise ConfigurationError(f"알 수 없는 embedding provider: {provider}")
