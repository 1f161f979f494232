"""Seed Data

빈 저장소에 처음 투입되는 기본 운영 지식.
저장소에 항목이 하나라도 있으면 다시 투입하지 않는다.
"""

from typing import Dict, List

from .models import KnowledgeEntry


# ============================================================================
# 기본 지식 (서버 운영 명령)
# ============================================================================

_SSH_PARAMS = [
    {"name": "user", "type": "string", "default": "root"},
    {"name": "server_ip", "type": "string", "required": True},
]

DEFAULT_KNOWLEDGE: List[Dict] = [
    {
        "intent": "server:check_status",
        "description": "检查服务器上服务的运行状态",
        "keywords": ["检查状态", "服务状态", "运行情况", "是否正常", "挂了没"],
        "command_template": 'ssh ${user}@${server_ip} "systemctl status ${service_name}"',
        "parameters": _SSH_PARAMS + [
            {"name": "service_name", "type": "string", "required": True},
        ],
        "risk_level": "low",
        "category": "monitoring",
        "examples": ["检查支付服务状态", "看看用户服务是否正常", "支付服务挂了没"],
    },
    {
        "intent": "server:restart_service",
        "description": "重启服务器上的指定服务",
        "keywords": ["重启服务", "重启", "重新启动", "restart"],
        "command_template": 'ssh ${user}@${server_ip} "systemctl restart ${service_name}"',
        "parameters": _SSH_PARAMS + [
            {"name": "service_name", "type": "string", "required": True},
        ],
        "risk_level": "high",
        "category": "operation",
        "examples": ["重启支付服务", "重新启动用户服务", "重启nginx"],
    },
    {
        "intent": "server:view_logs",
        "description": "查看服务器上服务的日志",
        "keywords": ["查看日志", "日志", "log", "查日志"],
        "command_template": 'ssh ${user}@${server_ip} "journalctl -u ${service_name} -n ${lines}"',
        "parameters": _SSH_PARAMS + [
            {"name": "service_name", "type": "string", "required": True},
            {"name": "lines", "type": "number", "default": 100},
        ],
        "risk_level": "low",
        "category": "monitoring",
        "examples": ["查看支付服务日志", "看看用户服务最近的日志", "查看最近200行日志"],
    },
    {
        "intent": "server:check_disk_usage",
        "description": "检查服务器磁盘使用情况",
        "keywords": ["磁盘使用", "磁盘空间", "存储空间", "硬盘使用"],
        "command_template": 'ssh ${user}@${server_ip} "df -h"',
        "parameters": list(_SSH_PARAMS),
        "risk_level": "low",
        "category": "monitoring",
        "examples": ["检查磁盘使用情况", "看看硬盘空间", "磁盘还有多少空间"],
    },
    {
        "intent": "server:check_memory",
        "description": "检查服务器内存使用情况",
        "keywords": ["内存使用", "内存情况", "memory", "内存占用"],
        "command_template": 'ssh ${user}@${server_ip} "free -h"',
        "parameters": list(_SSH_PARAMS),
        "risk_level": "low",
        "category": "monitoring",
        "examples": ["检查内存使用情况", "看看内存占用", "内存还剩多少"],
    },
]


def default_entries() -> List[KnowledgeEntry]:
    """기본 지식을 KnowledgeEntry 리스트로 반환 (매번 새 객체)"""
    return [KnowledgeEntry.from_dict(data) for data in DEFAULT_KNOWLEDGE]
