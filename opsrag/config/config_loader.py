"""설정 로더 모듈

YAML 파일 로드 및 환경 변수 오버라이드 지원
"""

import os
from pathlib import Path
from typing import Optional, Any, Dict, get_args

import yaml
from pydantic import ValidationError

from .models import Config

ENV_PREFIX = "OPSRAG_"
CONFIG_PATH_ENV = "OPSRAG_CONFIG_PATH"


class ConfigLoader:
    """설정 로더 클래스"""

    def __init__(self, config_path: Optional[str] = None):
        """초기화

        Args:
            config_path: 설정 파일 경로. None인 경우 기본 경로 사용
        """
        self.config_path = config_path or self._get_default_config_path()
        self._config: Optional[Config] = None
        self.last_error: Optional[str] = None

    @staticmethod
    def _get_default_config_path() -> str:
        """기본 설정 파일 경로 반환"""
        env_path = os.getenv(CONFIG_PATH_ENV)
        if env_path:
            return env_path

        # 프로젝트 루트/config/config.yaml
        project_root = Path(__file__).parent.parent.parent
        return str(project_root / "config" / "config.yaml")

    def load(self) -> Config:
        """설정 파일 로드 및 검증

        Returns:
            Config: 검증된 설정 객체

        Raises:
            FileNotFoundError: 설정 파일이 없는 경우
            ValidationError: 설정 검증 실패 시
            yaml.YAMLError: YAML 파싱 실패 시
        """
        if not Path(self.config_path).exists():
            raise FileNotFoundError(
                f"설정 파일을 찾을 수 없습니다: {self.config_path}\n"
                f"config/config.example.yaml을 복사하여 config/config.yaml을 생성하세요."
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        raw_config = self._apply_env_overrides(raw_config)

        try:
            self._config = Config(**raw_config)
            return self._config
        except ValidationError as e:
            # 메시지는 로그용으로만 정리하고 원래 예외를 그대로 전달
            self.last_error = self._format_validation_error(e)
            raise

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """환경 변수로 설정 오버라이드

        환경 변수 형식: OPSRAG_<SECTION>_<KEY>
        예: OPSRAG_EMBEDDING_API_KEY=sk-xxx, OPSRAG_RETRIEVAL_DEFAULT_TOP_K=5

        Args:
            config: 원본 설정 딕셔너리

        Returns:
            Dict: 환경 변수가 적용된 설정
        """
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX) or env_key == CONFIG_PATH_ENV:
                continue

            # OPSRAG_EMBEDDING_API_KEY -> ['embedding', 'api', 'key']
            parts = env_key[len(ENV_PREFIX):].lower().split('_')
            if len(parts) < 2:
                continue

            section = parts[0]
            key_path = '_'.join(parts[1:])

            if section not in Config.model_fields:
                continue

            if not isinstance(config.get(section), dict):
                config[section] = {}

            if self._is_string_field(section, key_path):
                config[section][key_path] = env_value
            else:
                config[section][key_path] = self._convert_env_value(env_value)

        return config

    @staticmethod
    def _is_string_field(section: str, key: str) -> bool:
        """문자열 필드(str, Optional[str])는 숫자처럼 보여도 변환하지 않는다"""
        section_model = Config.model_fields[section].annotation
        field = getattr(section_model, "model_fields", {}).get(key)
        if field is None:
            return False
        return field.annotation is str or str in get_args(field.annotation)

    @staticmethod
    def _convert_env_value(value: str) -> Any:
        """환경 변수 값을 적절한 타입으로 변환"""
        if value.lower() in ('true', 'yes'):
            return True
        if value.lower() in ('false', 'no'):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @staticmethod
    def _format_validation_error(error: ValidationError) -> str:
        """ValidationError를 사용자 친화적인 메시지로 변환"""
        errors = []
        for err in error.errors():
            loc = " → ".join(str(l) for l in err['loc'])
            errors.append(f"  • {loc}: {err['msg']}")

        return "설정 검증 오류:\n" + "\n".join(errors)

    def reload(self) -> Config:
        """설정 파일 재로드"""
        return self.load()

    @property
    def config(self) -> Config:
        """현재 로드된 설정 반환

        Raises:
            RuntimeError: 설정이 아직 로드되지 않은 경우
        """
        if self._config is None:
            raise RuntimeError(
                "설정이 로드되지 않았습니다. load() 메서드를 먼저 호출하세요."
            )
        return self._config


def load_config(config_path: Optional[str] = None) -> Config:
    """설정 파일 로드 편의 함수

    Args:
        config_path: 설정 파일 경로

    Returns:
        Config: 검증된 설정 객체
    """
    loader = ConfigLoader(config_path)
    return loader.load()
