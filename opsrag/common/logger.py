"""구조화된 로깅 설정

structlog을 사용한 JSON 구조화 로깅
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog


def reorder_keys(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """로그 키 순서를 가독성 좋게 재정렬하는 프로세서

    순서:
    1. timestamp (시간순 정렬 가능)
    2. level (로그 레벨)
    3. event (이벤트 이름)
    4. category (store | knowledge | retrieval | embedding)
    5. entry_id / intent (지식 항목 추적)
    6. 나머지 필드들 (알파벳 순)
    """
    priority_keys = [
        "timestamp",
        "level",
        "event",
        "category",
        "entry_id",
        "intent",
        "provider",
    ]

    ordered = {}
    for key in priority_keys:
        if key in event_dict:
            ordered[key] = event_dict[key]

    for key in sorted(k for k in event_dict.keys() if k not in priority_keys):
        ordered[key] = event_dict[key]

    return ordered


def _json_serializer(event_dict, **kwargs):
    # 중국어/한글을 \uXXXX 이스케이프하지 않고 그대로 출력
    return json.dumps(event_dict, ensure_ascii=False, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    output: str = "stdout",
    file_path: Optional[str] = None,
) -> None:
    """로깅 설정 초기화

    Args:
        level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 로그 포맷 (json, text)
        output: 로그 출력 (stdout, file)
        file_path: output=file 일 때 로그 파일 경로 (기본 logs/opsrag.log)
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        reorder_keys,
    ]

    if format_type == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(serializer=_json_serializer))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    if output == "file":
        log_file_path = Path(file_path or "logs/opsrag.log")
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        # 라인 버퍼링: 크래시 직전 로그도 남도록
        log_stream = open(log_file_path, "a", encoding="utf-8", buffering=1)
    else:
        log_stream = sys.stdout

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_log_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=log_stream),
        cache_logger_on_first_use=False,
    )


def _log_level_to_int(level: str) -> int:
    """로그 레벨 문자열을 정수로 변환"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    level = getattr(level, "value", level)  # LogLevel enum 허용
    return levels.get(str(level).upper(), 20)  # 기본값: INFO


def get_logger(name: str) -> structlog.BoundLogger:
    """로거 인스턴스 반환

    Args:
        name: 로거 이름 (일반적으로 __name__)

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("knowledge_added", entry_id="...", intent="server:check_status")
    """
    return structlog.get_logger(name)


def log_with_context(**context: Any) -> structlog.BoundLogger:
    """컨텍스트가 바인딩된 로거 반환

    Example:
        >>> logger = log_with_context(request_id="abc-123")
        >>> logger.info("search_started")
    """
    return structlog.get_logger().bind(**context)
