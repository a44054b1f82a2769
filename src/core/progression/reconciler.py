"""진행 동기화 (Reconciler)

콘텐츠 설정이나 해금 정책 토글이 바뀐 뒤, 기존 진행 기록을 현재 그래프에 맞춘다.

규칙:
- 기록 없음 → 잠김/미완료로 생성 (진행 생성 이후 추가된 콘텐츠)
- 완료된 기록 → 그대로 둔다 (완료는 절대 되돌리지 않음)
- 미완료 + 맵 해금됨 → 현재 정책으로 is_unlocked 재계산
  (이미 해금된 기록은 다시 잠그지 않는다)

현재 그래프 + 현재 진행 + 현재 정책만 사용하므로 멱등이며 이력 로그가 필요 없다.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .graph import GraphIndex
from .models import UnlockPolicy
from .resolver import new_record, requirements_met
from .store import ProgressStore

logger = logging.getLogger(__name__)


def reconcile(
    existing: ProgressStore,
    graph: GraphIndex,
    unlocked_maps: Iterable[str],
    policy: UnlockPolicy,
) -> ProgressStore:
    """기존 진행 + 현재 그래프 + 해금 맵 + 정책 → 일관된 새 진행 저장소.

    그래프에 없는 (map, npc) 기록은 삭제하지 않고 보존한다.
    """
    result = ProgressStore((r.copy() for r in existing), unlocked_maps)

    created = 0
    unlocked = 0
    for map_config, npc in graph.iter_npcs():
        map_id = map_config.map_id
        record = result.find(map_id, npc.id)
        if record is None:
            record = new_record(map_id, npc.id)
            result.put(record)
            created += 1

        if record.is_completed or record.is_unlocked:
            continue
        if not result.is_map_unlocked(map_id):
            continue

        if requirements_met(graph, result, map_id, npc.id, policy):
            result.update(map_id, npc.id, is_unlocked=True)
            unlocked += 1

    logger.debug(
        "Reconciled progress: %d records created, %d npcs unlocked", created, unlocked
    )
    return result
