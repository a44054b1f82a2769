"""해금 판정 (Unlock Resolver)

순수 함수. (graph, store, event) → store'.
입력 저장소는 변경하지 않는다. 모든 단계가 사본에 적용된 뒤 반환되므로
호출자는 부분 적용된 연쇄 해금을 관찰할 수 없다.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .enums import DialogStep, EdgeKind, UnlockMode
from .graph import GraphIndex
from .models import NPCProgress, UnlockPolicy
from .store import ProgressStore

logger = logging.getLogger(__name__)


def requirements_met(
    graph: GraphIndex,
    store: ProgressStore,
    map_id: str,
    npc_id: str,
    policy: UnlockPolicy,
) -> bool:
    """NPC의 모든 해금 조건 간선이 충족되는지.

    REQUIRES_ANY: 맵이 해금 집합에 있음 (어느 출발 NPC로 열렸는지는 무관)
    REQUIRES: 선행 NPC 완료
    """
    mode = policy.effective_mode(graph.get_map(map_id))
    for req in graph.unlock_requirements(map_id, npc_id, mode):
        if req.kind == EdgeKind.REQUIRES_ANY:
            if not store.is_map_unlocked(req.target_map):
                return False
        elif req.kind == EdgeKind.REQUIRES:
            if not all(store.is_npc_completed(m, n) for m, n in req.sources):
                return False
    return True


def new_record(map_id: str, npc_id: str, is_unlocked: bool = False) -> NPCProgress:
    return NPCProgress(
        map_id=map_id,
        npc_id=npc_id,
        is_unlocked=is_unlocked,
        is_completed=False,
        dialog_step=DialogStep.QUESTION,
        fact_index=0,
    )


def initial_unlocked_maps(graph: GraphIndex) -> set[str]:
    """진입 맵 + 의존성 없는 맵"""
    return add_dependency_free_maps(graph, {graph.entry_map_id})


def add_dependency_free_maps(graph: GraphIndex, unlocked: Iterable[str]) -> set[str]:
    """어떤 NPC도 가리키지 않는 맵을 해금 집합에 추가"""
    augmented = set(unlocked)
    augmented.add(graph.entry_map_id)
    augmented |= graph.dependency_free_maps()
    return augmented


def compute_initial_unlock(graph: GraphIndex, policy: UnlockPolicy) -> list[NPCProgress]:
    """모든 (맵, NPC)에 대해 초기 진행 기록 생성.

    진입 맵에서만: INDEPENDENT이거나 선행 NPC가 없으면 해금.
    나머지는 전부 잠김.
    """
    entry_only = ProgressStore(unlocked_maps=[graph.entry_map_id])
    return [
        new_record(
            map_config.map_id,
            npc.id,
            is_unlocked=requirements_met(
                graph, entry_only, map_config.map_id, npc.id, policy
            ),
        )
        for map_config, npc in graph.iter_npcs()
    ]


def _seed_map(
    graph: GraphIndex,
    store: ProgressStore,
    map_id: str,
    policy: UnlockPolicy,
) -> None:
    """새로 도달한 맵의 NPC 해금 상태를 맵 자체 정책으로 초기화 (사본 변경).

    어느 출발 NPC로 열렸는지와 무관하게 동일하게 적용된다.
    """
    for npc in graph.get_map(map_id).npcs:
        record = store.find(map_id, npc.id)
        if record is None:
            record = new_record(map_id, npc.id)
            store.put(record)
        if not record.is_unlocked and requirements_met(
            graph, store, map_id, npc.id, policy
        ):
            store.update(map_id, npc.id, is_unlocked=True)


def complete_npc(
    graph: GraphIndex,
    store: ProgressStore,
    map_id: str,
    npc_id: str,
    policy: UnlockPolicy,
) -> ProgressStore:
    """NPC 완료 처리.

    1. 완료 표시 (기록 없으면 ProgressRecordNotFoundError)
    2. SEQUENTIAL: 이 NPC를 선행으로 갖는 다음 NPC 해금
    3. unlocks_map_id가 아직 잠긴 맵이면 해금 + 그 맵 NPC 초기 해금
    """
    result = store.copy()
    result.require(map_id, npc_id)
    result.update(map_id, npc_id, is_completed=True, is_unlocked=True)

    npc = graph.get_npc(map_id, npc_id)
    if npc is None:
        logger.warning(
            "Completed npc %s on map %s is not in the current graph", npc_id, map_id
        )
        return result

    if policy.effective_mode(graph.get_map(map_id)) == UnlockMode.SEQUENTIAL:
        nxt = graph.successor(map_id, npc_id)
        if nxt is not None:
            nxt_record = result.find(map_id, nxt.id)
            if nxt_record is not None and not nxt_record.is_unlocked:
                if requirements_met(graph, result, map_id, nxt.id, policy):
                    result.update(map_id, nxt.id, is_unlocked=True)

    target = npc.unlocks_map_id
    if target is not None and result.unlock_map(target):
        logger.info("Map %s unlocked by %s/%s", target, map_id, npc_id)
        _seed_map(graph, result, target, policy)

    return result


def predict_unlocked_map(
    graph: GraphIndex,
    store: ProgressStore,
    map_id: str,
    npc_id: str,
) -> Optional[str]:
    """이 NPC를 완료하면 새로 열릴 맵 ID (읽기 전용 사전 조회).

    완료 커밋 전에만 의미가 있다.
    """
    npc = graph.get_npc(map_id, npc_id)
    if npc is None or npc.unlocks_map_id is None:
        return None
    if store.is_map_unlocked(npc.unlocks_map_id):
        return None
    return npc.unlocks_map_id


def update_dialog(
    store: ProgressStore,
    map_id: str,
    npc_id: str,
    step: DialogStep,
    fact_index: int,
) -> ProgressStore:
    """대화 위치 갱신. 해금/완료 플래그는 건드리지 않는다."""
    if fact_index < 0:
        raise ValueError(f"fact_index must be >= 0, got {fact_index}")
    result = store.copy()
    result.update(map_id, npc_id, dialog_step=DialogStep(step), fact_index=fact_index)
    return result


def newly_unlocked(
    before: ProgressStore, after: ProgressStore
) -> tuple[list[str], list[tuple[str, str]]]:
    """before → after 사이에 새로 열린 맵과 NPC"""
    maps = sorted(after.unlocked_maps - before.unlocked_maps)
    npcs = [
        r.key
        for r in after
        if r.is_unlocked and not before.is_npc_unlocked(r.map_id, r.npc_id)
    ]
    return maps, npcs
