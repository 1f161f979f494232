"""
Knowledge Models

운영 지식 항목(KnowledgeEntry) 정의 및 직렬화
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from opsrag.common.exceptions import ValidationError


class RiskLevel(str, Enum):
    """명령 실행 위험도"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Parameter:
    """명령 템플릿 파라미터 (예: ${server_ip})"""
    name: str
    type: str = "string"
    required: Optional[bool] = None
    default: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.required is not None:
            data["required"] = self.required
        if self.default is not None:
            data["default"] = self.default
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Parameter":
        if isinstance(data, Parameter):
            return data
        if not isinstance(data, dict) or not str(data.get("name") or "").strip():
            raise ValidationError(f"파라미터에는 name이 필요합니다: {data!r}")
        return cls(
            name=data["name"],
            type=data.get("type", "string"),
            required=data.get("required"),
            default=data.get("default"),
        )


# 외부 API 형식(camelCase) 필드 별칭
_FIELD_ALIASES = {
    "commandTemplate": "command_template",
    "riskLevel": "risk_level",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


@dataclass
class KnowledgeEntry:
    """운영 지식 항목

    id / created_at / updated_at 은 저장소(repository)가 채운다.
    """
    intent: str
    description: str
    keywords: List[str] = field(default_factory=list)
    command_template: str = ""
    parameters: List[Parameter] = field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW
    category: str = "general"
    examples: List[str] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeEntry":
        """API 페이로드(dict)에서 항목 생성

        Raises:
            ValidationError: 필드 타입이 잘못된 경우
        """
        normalized = {_FIELD_ALIASES.get(k, k): v for k, v in data.items()}

        try:
            risk_level = RiskLevel(normalized.get("risk_level") or RiskLevel.LOW)
        except ValueError:
            raise ValidationError(
                f"riskLevel은 low/medium/high 중 하나여야 합니다: {normalized.get('risk_level')!r}"
            )

        keywords = normalized.get("keywords") or []
        examples = normalized.get("examples") or []
        parameters = normalized.get("parameters") or []
        for name, value in (("keywords", keywords), ("examples", examples), ("parameters", parameters)):
            if not isinstance(value, (list, tuple)):
                raise ValidationError(f"{name}는 리스트여야 합니다")

        return cls(
            intent=normalized.get("intent") or "",
            description=normalized.get("description") or "",
            keywords=[str(k) for k in keywords],
            command_template=normalized.get("command_template") or "",
            parameters=[Parameter.from_dict(p) for p in parameters],
            risk_level=risk_level,
            category=normalized.get("category") or "general",
            examples=[str(e) for e in examples],
            id=normalized.get("id"),
            created_at=normalized.get("created_at"),
            updated_at=normalized.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "intent": self.intent,
            "description": self.description,
            "keywords": list(self.keywords),
            "command_template": self.command_template,
            "parameters": [p.to_dict() for p in self.parameters],
            "risk_level": RiskLevel(self.risk_level).value,
            "category": self.category,
            "examples": list(self.examples),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def validate(self) -> None:
        """필수 필드 검증

        Raises:
            ValidationError: intent 또는 description이 비어 있는 경우
        """
        if not isinstance(self.intent, str) or not self.intent.strip():
            raise ValidationError(f"intent는 비어 있지 않은 문자열이어야 합니다: {self.intent!r}")
        if not isinstance(self.description, str) or not self.description.strip():
            raise ValidationError(f"description은 비어 있지 않은 문자열이어야 합니다: {self.description!r}")
        try:
            RiskLevel(self.risk_level)
        except ValueError:
            raise ValidationError(f"잘못된 riskLevel: {self.risk_level!r}")

    def to_metadata(self) -> Dict[str, Any]:
        """벡터 저장소용 평면(flat) 메타데이터로 직렬화

        리스트 필드는 JSON 문자열로 저장한다 (쉼표가 포함된 키워드도 보존).
        """
        return {
            "intent": self.intent,
            "description": self.description,
            "keywords": json.dumps(list(self.keywords), ensure_ascii=False),
            "command_template": self.command_template or "",
            "parameters": json.dumps([p.to_dict() for p in self.parameters], ensure_ascii=False),
            "risk_level": RiskLevel(self.risk_level).value,
            "category": self.category,
            "examples": json.dumps(list(self.examples), ensure_ascii=False),
            "created_at": self.created_at or "",
            "updated_at": self.updated_at or "",
        }

    @classmethod
    def from_metadata(cls, entry_id: str, metadata: Dict[str, Any]) -> "KnowledgeEntry":
        """평면 메타데이터에서 항목 복원"""
        try:
            risk_level = RiskLevel(metadata.get("risk_level") or RiskLevel.LOW)
        except ValueError:
            risk_level = RiskLevel.LOW

        return cls(
            intent=metadata.get("intent", ""),
            description=metadata.get("description", ""),
            keywords=decode_keywords(metadata.get("keywords")),
            command_template=metadata.get("command_template", ""),
            parameters=[Parameter.from_dict(p) for p in _decode_json_list(metadata.get("parameters"))],
            risk_level=risk_level,
            category=metadata.get("category", "general"),
            examples=[str(e) for e in _decode_json_list(metadata.get("examples"))],
            id=entry_id,
            created_at=metadata.get("created_at") or None,
            updated_at=metadata.get("updated_at") or None,
        )

    def with_identity(self, entry_id: str, created_at: str, updated_at: str) -> "KnowledgeEntry":
        return replace(self, id=entry_id, created_at=created_at, updated_at=updated_at)


def _decode_json_list(raw: Any) -> List[Any]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


def decode_keywords(raw: Any) -> List[str]:
    """키워드 메타데이터 디코딩

    JSON 리스트 형식과 이전 쉼표 구분 형식("a,b,c")을 모두 읽는다.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return [str(k) for k in raw]
    if isinstance(raw, str) and raw.lstrip().startswith("["):
        return [str(k) for k in _decode_json_list(raw)]
    # 빈 조각도 유지 (키워드 점수의 분모에 포함됨)
    return str(raw).split(",")


def build_document_text(entry: KnowledgeEntry) -> str:
    """임베딩 대상 정규 문서 텍스트 생성

    고정 순서: intent, description, keywords, command template, parameters, examples.
    이 텍스트에 들어가는 필드가 바뀌면 반드시 다시 임베딩해야 한다.
    """
    text = f"意图: {entry.intent}\n描述: {entry.description}"

    if entry.keywords:
        text += f"\n关键词: {', '.join(entry.keywords)}"

    if entry.command_template:
        text += f"\n命令模板: {entry.command_template}"

    if entry.parameters:
        summary = ", ".join(f"{p.name}({p.type})" for p in entry.parameters)
        text += f"\n参数: {summary}"

    if entry.examples:
        text += f"\n示例: {'; '.join(entry.examples)}"

    return text
