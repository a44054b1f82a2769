"""맵/연결 상태 조회 (읽기 전용)"""

from __future__ import annotations

from .enums import ConnectionStatus, MapStatus
from .graph import GraphIndex, MapConnection
from .store import ProgressStore


def is_map_unlocked(graph: GraphIndex, store: ProgressStore, map_id: str) -> bool:
    """진입 맵은 무조건 해금"""
    return map_id == graph.entry_map_id or store.is_map_unlocked(map_id)


def map_status(graph: GraphIndex, store: ProgressStore, map_id: str) -> MapStatus:
    if not is_map_unlocked(graph, store, map_id):
        return MapStatus.LOCKED
    records = store.records_for_map(map_id)
    if records and all(r.is_completed for r in records):
        return MapStatus.COMPLETED
    return MapStatus.UNLOCKED


def map_completion_ratio(store: ProgressStore, map_id: str) -> float:
    """완료 NPC 비율 (0.0 ~ 1.0). 기록이 없으면 0."""
    records = store.records_for_map(map_id)
    if not records:
        return 0.0
    return sum(1 for r in records if r.is_completed) / len(records)


def connection_statuses(
    graph: GraphIndex, store: ProgressStore
) -> list[tuple[MapConnection, ConnectionStatus]]:
    """맵 간 연결선 상태. 출발 NPC가 완료되면 MAP_UNLOCKED."""
    result = []
    for conn in graph.connections():
        if store.is_npc_completed(conn.source_map_id, conn.npc_id):
            status = ConnectionStatus.MAP_UNLOCKED
        else:
            status = ConnectionStatus.LOCKED
        result.append((conn, status))
    return result
