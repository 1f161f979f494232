"""
Local Text Embedder

sentence-transformers 모델로 프로세스 안에서 임베딩 생성
"""

import asyncio
import logging
import os
import time
from typing import List, Optional

os.environ.setdefault('TOKENIZERS_PARALLELISM', 'false')
os.environ.setdefault('HF_HUB_DISABLE_PROGRESS_BARS', '1')
os.environ.setdefault('TRANSFORMERS_VERBOSITY', 'error')

logging.getLogger("sentence_transformers").setLevel(logging.ERROR)
logging.getLogger("transformers").setLevel(logging.ERROR)

from sentence_transformers import SentenceTransformer
import structlog

from opsrag.common.exceptions import EmbeddingError

from .embedder import EmbeddingProvider

logger = structlog.get_logger(__name__)


class LocalEmbedder(EmbeddingProvider):
    """
    로컬 임베딩 생성기

    Sentence Transformers를 사용하여 텍스트를 벡터로 변환합니다.
    device=None이면 sentence-transformers가 GPU/CPU를 자동 선택합니다.
    """

    provider_name = "local"

    def __init__(
        self,
        model_name: str = "BAAI/bge-m3",
        dimension: int = 1024,
        batch_size: int = 32,
        device: Optional[str] = None,
        metrics=None,
    ):
        """
        Args:
            model_name: Sentence Transformers 모델 이름
            dimension: 기대 임베딩 차원
            batch_size: 배치 크기
            device: 사용할 디바이스 ('cuda', 'cpu', None=auto)
            metrics: RAGMetrics (선택)
        """
        self._model_name = model_name
        self._dimension = dimension
        self.batch_size = batch_size
        self.metrics = metrics

        logger.info("local_embedding_model_loading", provider=self.provider_name, model=model_name, device=device)
        start_time = time.time()
        try:
            self.model = SentenceTransformer(model_name, device=device)
        except Exception as e:
            logger.error("local_embedding_model_load_failed",
                         provider=self.provider_name,
                         model=model_name,
                         error=str(e),
                         error_type=type(e).__name__)
            raise EmbeddingError(f"모델 로드 실패: {model_name}: {e}", provider=self.provider_name) from e
        self.device = str(self.model.device)

        # 통계
        self.total_embeddings = 0
        self.total_texts = 0
        self.total_errors = 0

        logger.info("local_embedder_initialized",
                    provider=self.provider_name,
                    model=model_name,
                    dimension=dimension,
                    device=self.device,
                    elapsed=f"{time.time() - start_time:.2f}s")

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def embed(self, text: str) -> List[float]:
        """
        단일 텍스트 임베딩

        Raises:
            EmbeddingError: 추론 실패 또는 차원 불일치
        """
        vectors = await self._encode([text])
        return vectors[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """배치 텍스트 임베딩"""
        if not texts:
            return []
        return await self._encode(list(texts))

    async def _encode(self, texts: List[str]) -> List[List[float]]:
        # CPU/GPU 바운드 작업이므로 executor에서 실행
        loop = asyncio.get_running_loop()
        try:
            embeddings = await loop.run_in_executor(
                None,
                lambda: self.model.encode(
                    texts,
                    batch_size=self.batch_size,
                    convert_to_numpy=True,
                ),
            )
        except Exception as e:
            self._record_error(len(texts), str(e))
            raise EmbeddingError(f"로컬 임베딩 실패: {e}", provider=self.provider_name) from e

        vectors = [embedding.tolist() for embedding in embeddings]
        for vector in vectors:
            if len(vector) != self._dimension:
                self._record_error(len(texts), "dimension mismatch")
                raise EmbeddingError(
                    f"embedding 차원 불일치: expected {self._dimension}, got {len(vector)}",
                    provider=self.provider_name,
                )

        self.total_embeddings += len(texts)
        self.total_texts += sum(len(t) for t in texts)
        return vectors

    def _record_error(self, batch_size: int, error: str) -> None:
        self.total_errors += 1
        if self.metrics is not None:
            self.metrics.record_embedding_error(self.provider_name)
        logger.error("local_embedding_failed", provider=self.provider_name, batch_size=batch_size, error=error)

    def get_stats(self) -> dict:
        """임베딩 통계 반환"""
        return {
            "embedder_type": self.provider_name,
            "model_name": self._model_name,
            "dimension": self._dimension,
            "device": self.device,
            "total_embeddings": self.total_embeddings,
            "total_errors": self.total_errors,
            "avg_text_length": (
                self.total_texts / self.total_embeddings
                if self.total_embeddings > 0 else 0
            ),
        }
