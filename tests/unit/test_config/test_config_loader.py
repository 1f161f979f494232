"""설정 로더 단위 테스트"""

import pytest
from pydantic import ValidationError

from opsrag.config.config_loader import ConfigLoader, load_config, CONFIG_PATH_ENV
from opsrag.config.models import Config, EmbeddingProviderType, LogLevel, RetrievalConfig


class TestConfigLoader:
    """ConfigLoader 테스트"""

    def test_load_valid_config(self, temp_config_file):
        """정상 설정 파일 로드 테스트"""
        loader = ConfigLoader(temp_config_file)
        config = loader.load()

        assert isinstance(config, Config)
        assert config.embedding.provider == EmbeddingProviderType.SIMPLE
        assert config.embedding.dimension == 64
        assert config.knowledge.auto_initialize is False

    def test_load_nonexistent_file(self):
        """존재하지 않는 파일 로드 시 에러 테스트"""
        loader = ConfigLoader("/nonexistent/config.yaml")

        with pytest.raises(FileNotFoundError) as exc_info:
            loader.load()

        assert "설정 파일을 찾을 수 없습니다" in str(exc_info.value)

    def test_load_invalid_config(self, invalid_config_file):
        """잘못된 설정 검증 테스트"""
        loader = ConfigLoader(invalid_config_file)

        with pytest.raises(ValidationError):
            loader.load()

        assert loader.last_error is not None
        assert "embedding" in loader.last_error

    def test_load_empty_file_uses_defaults(self, tmp_path):
        """빈 YAML 파일은 기본값"""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        config = ConfigLoader(str(path)).load()

        assert config.retrieval.default_top_k == 3

    def test_env_override_simple(self, temp_config_file, monkeypatch):
        """환경 변수로 설정 오버라이드 테스트 (단순 값)"""
        monkeypatch.setenv("OPSRAG_EMBEDDING_API_KEY", "sk-test")

        config = ConfigLoader(temp_config_file).load()

        assert config.embedding.api_key == "sk-test"

    def test_env_override_int_and_float(self, temp_config_file, monkeypatch):
        """환경 변수 숫자 변환 테스트"""
        monkeypatch.setenv("OPSRAG_RETRIEVAL_DEFAULT_TOP_K", "5")
        monkeypatch.setenv("OPSRAG_RETRIEVAL_DEFAULT_THRESHOLD", "0.8")

        config = ConfigLoader(temp_config_file).load()

        assert config.retrieval.default_top_k == 5
        assert config.retrieval.default_threshold == 0.8

    def test_env_override_numeric_string_field(self, temp_config_file, monkeypatch):
        """
        Given: 숫자로만 된 API 키, "true"라는 파일 경로
        When: 로드
        Then: 문자열 필드는 변환하지 않고 그대로 유지
        """
        monkeypatch.setenv("OPSRAG_EMBEDDING_API_KEY", "123456")
        monkeypatch.setenv("OPSRAG_LOGGING_FILE_PATH", "true")

        config = ConfigLoader(temp_config_file).load()

        assert config.embedding.api_key == "123456"
        assert config.logging.file_path == "true"

    def test_env_override_boolean(self, temp_config_file, monkeypatch):
        """환경 변수 Boolean 변환 테스트"""
        monkeypatch.setenv("OPSRAG_KNOWLEDGE_AUTO_INITIALIZE", "true")

        config = ConfigLoader(temp_config_file).load()

        assert config.knowledge.auto_initialize is True

    def test_env_unknown_section_ignored(self, temp_config_file, monkeypatch):
        """알 수 없는 섹션의 환경 변수는 무시"""
        monkeypatch.setenv("OPSRAG_UNKNOWN_VALUE", "1")

        config = ConfigLoader(temp_config_file).load()

        assert not hasattr(config, "unknown")

    def test_default_path_from_env(self, temp_config_file, monkeypatch):
        """OPSRAG_CONFIG_PATH로 기본 경로 지정"""
        monkeypatch.setenv(CONFIG_PATH_ENV, temp_config_file)

        loader = ConfigLoader()

        assert loader.config_path == temp_config_file
        assert loader.load().embedding.dimension == 64

    def test_reload(self, temp_config_file):
        """설정 재로드 테스트"""
        loader = ConfigLoader(temp_config_file)
        config1 = loader.load()
        config2 = loader.reload()

        assert config1.embedding.dimension == config2.embedding.dimension

    def test_config_property_before_load(self):
        """로드 전 config 프로퍼티 접근 시 에러 테스트"""
        loader = ConfigLoader("/nonexistent/config.yaml")

        with pytest.raises(RuntimeError) as exc_info:
            _ = loader.config

        assert "설정이 로드되지 않았습니다" in str(exc_info.value)

    def test_config_property_after_load(self, temp_config_file):
        """로드 후 config 프로퍼티 접근 테스트"""
        loader = ConfigLoader(temp_config_file)
        loader.load()

        assert isinstance(loader.config, Config)

    def test_load_config_convenience_function(self, temp_config_file):
        """load_config 편의 함수 테스트"""
        config = load_config(temp_config_file)

        assert isinstance(config, Config)
        assert config.embedding.dimension == 64


class TestConfigValidation:
    """설정 검증 테스트"""

    def test_max_top_k_must_cover_default(self):
        """max_top_k < default_top_k 거부"""
        with pytest.raises(ValidationError) as exc_info:
            RetrievalConfig(default_top_k=5, max_top_k=3)

        assert "max_top_k" in str(exc_info.value)

    def test_min_threshold_must_not_exceed_default(self):
        """min_threshold > default_threshold 거부"""
        with pytest.raises(ValidationError):
            RetrievalConfig(default_threshold=0.5, min_threshold=0.6)

    def test_threshold_range_validation(self):
        """임계치 범위 검증 테스트 (0.0 - 1.0)"""
        with pytest.raises(ValidationError):
            Config(retrieval={"default_threshold": 1.5})

    def test_weight_range_validation(self):
        """가중치 범위 검증"""
        with pytest.raises(ValidationError):
            Config(retrieval={"weights": {"similarity": -0.1}})

    def test_enum_validation(self):
        """Enum 검증 테스트"""
        config = Config(embedding={"provider": "local"})
        assert config.embedding.provider == EmbeddingProviderType.LOCAL

        with pytest.raises(ValidationError):
            Config(embedding={"provider": "invalid_provider"})


class TestDefaultValues:
    """기본값 테스트"""

    def test_default_config_creation(self):
        """기본 설정으로 Config 생성 테스트"""
        config = Config()

        assert config.embedding.provider == EmbeddingProviderType.HTTP
        assert config.embedding.api_url == "https://api.siliconflow.cn/v1/embeddings"
        assert config.embedding.model_name == "Pro/BAAI/bge-m3"
        assert config.embedding.dimension == 1024
        assert config.embedding.timeout == 30.0
        assert config.store.persist_path == "./data/vector_store.json"
        assert config.knowledge.auto_initialize is True
        assert config.logging.level == LogLevel.INFO

    def test_retrieval_defaults(self):
        """검색 기본값과 점수 가중치"""
        retrieval = Config().retrieval

        assert retrieval.default_top_k == 3
        assert retrieval.default_threshold == 0.65
        assert retrieval.max_top_k == 10
        assert retrieval.min_threshold == 0.3
        assert retrieval.recommendation_top_k == 5
        assert retrieval.weights.similarity == 0.6
        assert retrieval.weights.keyword == 0.3
        assert retrieval.weights.description == 0.1
        assert retrieval.weights.exact_match == 0.3
        assert retrieval.weights.partial_match == 0.15

    def test_partial_config_with_defaults(self):
        """일부 설정만 제공 시 나머지 기본값 사용 테스트"""
        config = Config(retrieval={"default_top_k": 5})

        assert config.retrieval.default_top_k == 5
        assert config.retrieval.max_top_k == 10
        assert config.embedding.dimension == 1024
