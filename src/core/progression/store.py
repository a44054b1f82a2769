"""진행 저장소 - NPC 진행 기록 + 해금된 맵 집합

세션 동안의 단일 진실 원천. Resolver/Reconciler는 입력 저장소를 변경하지 않고
copy()한 사본을 변경해서 돌려준다.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from .errors import ProgressRecordNotFoundError
from .models import NPCProgress, ProgressSnapshot


class ProgressStore:
    """(map_id, npc_id) → NPCProgress, unlocked_maps"""

    def __init__(
        self,
        records: Iterable[NPCProgress] = (),
        unlocked_maps: Iterable[str] = (),
    ) -> None:
        self._records: dict[tuple[str, str], NPCProgress] = {}
        for record in records:
            self._records[record.key] = record
        self._unlocked_maps: set[str] = set(unlocked_maps)

    # === 조회 ===

    def find(self, map_id: str, npc_id: str) -> Optional[NPCProgress]:
        return self._records.get((map_id, npc_id))

    def require(self, map_id: str, npc_id: str) -> NPCProgress:
        record = self._records.get((map_id, npc_id))
        if record is None:
            raise ProgressRecordNotFoundError(map_id, npc_id)
        return record

    def records(self) -> list[NPCProgress]:
        return list(self._records.values())

    def records_for_map(self, map_id: str) -> list[NPCProgress]:
        return [r for r in self._records.values() if r.map_id == map_id]

    @property
    def unlocked_maps(self) -> frozenset[str]:
        return frozenset(self._unlocked_maps)

    def is_map_unlocked(self, map_id: str) -> bool:
        return map_id in self._unlocked_maps

    def is_npc_unlocked(self, map_id: str, npc_id: str) -> bool:
        record = self.find(map_id, npc_id)
        return record.is_unlocked if record else False

    def is_npc_completed(self, map_id: str, npc_id: str) -> bool:
        record = self.find(map_id, npc_id)
        return record.is_completed if record else False

    def __iter__(self) -> Iterator[NPCProgress]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProgressStore):
            return NotImplemented
        return (
            self._records == other._records
            and self._unlocked_maps == other._unlocked_maps
        )

    def __repr__(self) -> str:
        return (
            f"ProgressStore(records={len(self._records)}, "
            f"unlocked_maps={sorted(self._unlocked_maps)})"
        )

    # === 변경 (사본에서만 사용) ===

    def copy(self) -> ProgressStore:
        return ProgressStore(
            (r.copy() for r in self._records.values()),
            self._unlocked_maps,
        )

    def put(self, record: NPCProgress) -> None:
        self._records[record.key] = record

    def update(self, map_id: str, npc_id: str, **changes) -> NPCProgress:
        updated = self.require(map_id, npc_id).copy(**changes)
        self._records[updated.key] = updated
        return updated

    def unlock_map(self, map_id: str) -> bool:
        """새로 추가되면 True"""
        if map_id in self._unlocked_maps:
            return False
        self._unlocked_maps.add(map_id)
        return True

    # === 스냅샷 ===

    def to_snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            progress=[r.copy() for r in self._records.values()],
            unlocked_maps=sorted(self._unlocked_maps),
        )

    @classmethod
    def from_snapshot(cls, snapshot: ProgressSnapshot) -> ProgressStore:
        return cls((r.copy() for r in snapshot.progress), snapshot.unlocked_maps)
