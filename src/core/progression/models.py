"""진행 시스템 도메인 모델 (DB 무관)"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .enums import DialogStep, UnlockMode


@dataclass(frozen=True)
class MapRef:
    """월드 설정에 나열된 맵 항목"""

    id: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class WorldConfig:
    """월드 설정 (맵 순서 고정, 릴리스 단위로 정적)"""

    world_name: str = ""
    version: str = ""
    description: str = ""
    maps: tuple[MapRef, ...] = ()

    def map_ids(self) -> list[str]:
        return [m.id for m in self.maps]

    def find_map(self, map_id: str) -> Optional[MapRef]:
        for m in self.maps:
            if m.id == map_id:
                return m
        return None


@dataclass(frozen=True)
class NpcConfig:
    """맵 위 NPC 설정"""

    id: str
    name: str = ""
    prerequisite_npc_id: Optional[str] = None  # None = 체인의 첫 NPC
    unlocks_map_id: Optional[str] = None  # 완료 시 해금되는 맵 (충분조건)


@dataclass(frozen=True)
class MapConfig:
    """맵 설정 문서"""

    map_id: str
    unlock_mode: UnlockMode = UnlockMode.SEQUENTIAL
    npcs: tuple[NpcConfig, ...] = ()

    def find_npc(self, npc_id: str) -> Optional[NpcConfig]:
        for npc in self.npcs:
            if npc.id == npc_id:
                return npc
        return None


@dataclass(frozen=True)
class UnlockPolicy:
    """해금 정책 플래그.

    all_npc_independent는 개발자 토글. 켜지면 모든 맵이 INDEPENDENT로 동작한다.
    """

    all_npc_independent: bool = False

    def effective_mode(self, map_config: MapConfig) -> UnlockMode:
        if self.all_npc_independent:
            return UnlockMode.INDEPENDENT
        return map_config.unlock_mode


@dataclass
class NPCProgress:
    """(map_id, npc_id) 단위 진행 기록"""

    map_id: str
    npc_id: str
    is_unlocked: bool = False
    is_completed: bool = False
    dialog_step: DialogStep = DialogStep.QUESTION
    fact_index: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.map_id, self.npc_id)

    def copy(self, **changes) -> NPCProgress:
        return replace(self, **changes)


@dataclass
class ProgressSnapshot:
    """원격/로컬 저장용 스냅샷 (읽기 전용 사본으로 전달)"""

    progress: list[NPCProgress] = field(default_factory=list)
    unlocked_maps: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.progress
