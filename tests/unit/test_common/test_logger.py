"""구조화 로깅 / 예외 테스트"""

import json

from opsrag.common.exceptions import (
    DimensionMismatchError,
    EmbeddingError,
    EmbeddingTimeoutError,
    NotFoundError,
    OpsRAGError,
    ValidationError,
)
from opsrag.common.logger import _log_level_to_int, get_logger, reorder_keys, setup_logging
from opsrag.config.models import LogLevel


class TestReorderKeys:
    """키 재정렬 프로세서 테스트"""

    def test_priority_keys_first(self):
        """우선순위 키가 앞, 나머지는 알파벳 순"""
        event = {
            "zeta": 1,
            "event": "knowledge_added",
            "entry_id": "abc",
            "alpha": 2,
            "timestamp": "2024-01-01T00:00:00Z",
            "level": "info",
        }

        ordered = reorder_keys(None, "info", event)

        assert list(ordered.keys()) == ["timestamp", "level", "event", "entry_id", "alpha", "zeta"]


class TestSetupLogging:
    """setup_logging 테스트"""

    def test_log_level_conversion(self):
        """문자열/enum 레벨 변환"""
        assert _log_level_to_int("debug") == 10
        assert _log_level_to_int(LogLevel.ERROR) == 40
        assert _log_level_to_int("unknown") == 20

    def test_json_file_output_keeps_unicode(self, tmp_path):
        """
        Given: JSON 포맷 + 파일 출력
        When: 중국어 값을 로깅
        Then: 이스케이프 없이 JSON 한 줄로 기록
        """
        log_file = tmp_path / "logs" / "opsrag.log"
        setup_logging(level="INFO", format_type="json", output="file", file_path=str(log_file))
        try:
            get_logger("test").info("knowledge_added", intent="server:check_status", description="检查服务状态")

            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            record = json.loads(line)
            assert record["event"] == "knowledge_added"
            assert record["description"] == "检查服务状态"
            assert "检查服务状态" in line
        finally:
            setup_logging(level="DEBUG", format_type="text")


class TestExceptions:
    """예외 계층 테스트"""

    def test_hierarchy(self):
        assert issubclass(ValidationError, OpsRAGError)
        assert issubclass(EmbeddingTimeoutError, EmbeddingError)

    def test_error_attributes(self):
        """예외에 진단 정보 포함"""
        not_found = NotFoundError("missing", entry_id="id-1")
        mismatch = DimensionMismatchError(expected=4, actual=3)
        embedding = EmbeddingError("HTTP 500", provider="http", status=500)

        assert not_found.entry_id == "id-1"
        assert (mismatch.expected, mismatch.actual) == (4, 3)
        assert "expected 4" in str(mismatch)
        assert embedding.provider == "http"
        assert embedding.status == 500
