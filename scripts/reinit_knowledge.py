"""
지식 베이스 재초기화 스크립트

저장소를 로드하고, 비어 있으면 기본 지식을 투입한 뒤
테스트 쿼리로 검색이 동작하는지 확인합니다.

사용법:
    python scripts/reinit_knowledge.py [--config config/config.yaml] [--query "检查服务状态"]
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# 프로젝트 루트를 PYTHONPATH에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from opsrag.common.exceptions import OpsRAGError
from opsrag.common.logger import setup_logging
from opsrag.config.config_loader import load_config
from opsrag.system import RAGSystem

DEFAULT_PROBE_QUERY = "检查服务状态"


async def reinitialize(config_path, probe_query: str) -> bool:
    config = load_config(config_path) if config_path else None
    if config is not None:
        setup_logging(
            level=config.logging.level,
            format_type=config.logging.format,
            output=config.logging.output,
            file_path=config.logging.file_path,
        )
    else:
        setup_logging(level="WARNING", format_type="text")

    print("[1/4] RAG 시스템 초기화...")
    # 기본 지식 투입 여부를 직접 확인하기 위해 자동 투입 없이 로드
    system = RAGSystem.from_config(config)
    try:
        await system.repository.initialize(seed=False)

        count = await system.repository.count()
        print(f"[2/4] 현재 지식 항목 수: {count}")

        if count == 0:
            print("[3/4] 지식 베이스가 비어 있어 기본 지식을 투입합니다...")
            await system.repository.initialize(seed=True)
            count = await system.repository.count()
            print(f"      투입 후 항목 수: {count}")
            if count == 0:
                print("✗ 기본 지식 투입 실패")
                return False
        else:
            print("[3/4] 기존 데이터가 있어 재투입하지 않습니다. 현재 내용:")
            for i, entry in enumerate(await system.list_knowledge(), start=1):
                print(f"      {i}. {entry.intent}: {entry.description}")

        print(f"[4/4] 테스트 쿼리: {probe_query}")
        response = await system.query(probe_query, threshold=system.config.retrieval.min_threshold)
        if not response["success"]:
            print(f"✗ 쿼리 실패: {response['error']}")
            return False

        knowledge = response["relevant_knowledge"]
        print(f"      매칭 수: {knowledge['total_found']}")
        if knowledge["results"]:
            best = knowledge["results"][0]
            print(f"      최적 매칭: {best['intent']} (relevance={best['relevance_score']:.3f})")
        return True

    except OpsRAGError as e:
        print(f"✗ 재초기화 실패: {e}")
        return False

    finally:
        await system.shutdown()


def main() -> int:
    parser = argparse.ArgumentParser(description="지식 베이스 재초기화")
    parser.add_argument(
        "--config",
        default=os.getenv("OPSRAG_CONFIG_PATH"),
        help="설정 파일 경로 (없으면 기본값 사용)",
    )
    parser.add_argument("--query", default=DEFAULT_PROBE_QUERY, help="확인용 테스트 쿼리")
    args = parser.parse_args()

    success = asyncio.run(reinitialize(args.config, args.query))
    print("\n=== 완료 ===" if success else "\n=== 실패 ===")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
