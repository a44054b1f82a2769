"""그래프 인덱스 - 월드/맵 설정의 인메모리 표현

맵 내부 선행 체인(REQUIRES)과 맵 간 해금 간선(REQUIRES_ANY)을
하나의 간선 모델로 다룬다. Resolver와 Reconciler는 모두
unlock_requirements()를 통해 해금 조건을 조회한다.

세션당 1회 로드. 로드 시 최소한의 형태/참조 검증만 수행한다.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from .enums import EdgeKind, UnlockMode
from .errors import ConfigurationError
from .models import MapConfig, NpcConfig, WorldConfig

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_MAP_ID = "1"


@dataclass(frozen=True)
class Requirement:
    """해금 조건 간선 1개.

    REQUIRES: sources의 NPC(1개)가 완료되어야 한다.
    REQUIRES_ANY: target_map이 해금되어 있어야 한다. sources는 그 맵을 열 수 있는 NPC들.
    """

    kind: EdgeKind
    target_map: str
    sources: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class MapConnection:
    """맵 간 연결 (출발 NPC → 도착 맵)"""

    source_map_id: str
    npc_id: str
    target_map_id: str


class GraphIndex:
    """월드 설정 + 맵별 설정 인덱스"""

    def __init__(
        self,
        world: WorldConfig,
        maps: Mapping[str, MapConfig],
        entry_map_id: str = DEFAULT_ENTRY_MAP_ID,
    ) -> None:
        self.world = world
        self.entry_map_id = entry_map_id
        self._maps: dict[str, MapConfig] = {}
        self._npcs: dict[tuple[str, str], NpcConfig] = {}
        self._successors: dict[tuple[str, str], NpcConfig] = {}
        self._incoming: dict[str, list[tuple[str, str]]] = defaultdict(list)

        self._index(maps)
        logger.info(
            "GraphIndex loaded: %d maps, %d npcs, %d cross-map edges",
            len(self._maps),
            len(self._npcs),
            sum(len(v) for v in self._incoming.values()),
        )

    # === 구축 / 검증 ===

    def _index(self, maps: Mapping[str, MapConfig]) -> None:
        world_ids = self.world.map_ids()
        if len(set(world_ids)) != len(world_ids):
            raise ConfigurationError("World config lists duplicate map ids")

        for map_id in world_ids:
            config = maps.get(map_id)
            if config is None:
                raise ConfigurationError(f"Missing map configuration for map '{map_id}'")
            if config.map_id != map_id:
                raise ConfigurationError(
                    f"Map document for '{map_id}' declares mapId '{config.map_id}'"
                )
            self._maps[map_id] = config

        extra = set(maps) - set(world_ids)
        if extra:
            logger.warning("Ignoring map configs not listed in world: %s", sorted(extra))

        if self.entry_map_id not in self._maps:
            raise ConfigurationError(f"Entry map '{self.entry_map_id}' is not in the world")

        for map_id, config in self._maps.items():
            for npc in config.npcs:
                key = (map_id, npc.id)
                if key in self._npcs:
                    raise ConfigurationError(f"Duplicate npc '{npc.id}' on map '{map_id}'")
                self._npcs[key] = npc

        for map_id, config in self._maps.items():
            for npc in config.npcs:
                if npc.prerequisite_npc_id is not None:
                    prereq_key = (map_id, npc.prerequisite_npc_id)
                    if prereq_key not in self._npcs:
                        raise ConfigurationError(
                            f"NPC '{npc.id}' on map '{map_id}' requires unknown "
                            f"npc '{npc.prerequisite_npc_id}'"
                        )
                    if prereq_key in self._successors:
                        raise ConfigurationError(
                            f"NPC '{npc.prerequisite_npc_id}' on map '{map_id}' is the "
                            "prerequisite of more than one npc"
                        )
                    self._successors[prereq_key] = npc

                if npc.unlocks_map_id is not None:
                    if npc.unlocks_map_id not in self._maps:
                        raise ConfigurationError(
                            f"NPC '{npc.id}' on map '{map_id}' unlocks unknown "
                            f"map '{npc.unlocks_map_id}'"
                        )
                    self._incoming[npc.unlocks_map_id].append((map_id, npc.id))

        for map_id, config in self._maps.items():
            self._check_chain_heads(map_id, config)

    def _check_chain_heads(self, map_id: str, config: MapConfig) -> None:
        """모든 NPC는 선행 없는 머리 NPC에서 도달 가능해야 함 (자기 참조/순환 금지)"""
        reached: set[str] = set()
        for npc in config.npcs:
            if npc.prerequisite_npc_id is not None:
                continue
            current: Optional[NpcConfig] = npc
            while current is not None:
                reached.add(current.id)
                current = self._successors.get((map_id, current.id))

        orphaned = [npc.id for npc in config.npcs if npc.id not in reached]
        if orphaned:
            raise ConfigurationError(
                f"Cyclic prerequisite chain on map '{map_id}': {orphaned}"
            )

    # === 조회 ===

    def map_ids(self) -> list[str]:
        """월드 순서대로 맵 ID"""
        return list(self._maps)

    def has_map(self, map_id: str) -> bool:
        return map_id in self._maps

    def get_map(self, map_id: str) -> MapConfig:
        config = self._maps.get(map_id)
        if config is None:
            raise KeyError(f"Unknown map '{map_id}'")
        return config

    def get_npc(self, map_id: str, npc_id: str) -> Optional[NpcConfig]:
        return self._npcs.get((map_id, npc_id))

    def iter_npcs(self) -> Iterator[tuple[MapConfig, NpcConfig]]:
        for config in self._maps.values():
            for npc in config.npcs:
                yield config, npc

    def successor(self, map_id: str, npc_id: str) -> Optional[NpcConfig]:
        """이 NPC를 선행으로 갖는 NPC (체인 불변식상 최대 1개)"""
        return self._successors.get((map_id, npc_id))

    def unlocking_npcs(self, target_map_id: str) -> list[tuple[str, str]]:
        """target_map을 여는 (map_id, npc_id) 목록"""
        return list(self._incoming.get(target_map_id, []))

    def dependency_free_maps(self) -> set[str]:
        """어떤 NPC도 열지 않는 맵 (진입 맵 제외)"""
        return {
            map_id
            for map_id in self._maps
            if map_id != self.entry_map_id and not self._incoming.get(map_id)
        }

    def connections(self) -> list[MapConnection]:
        return [
            MapConnection(source_map_id=src_map, npc_id=npc_id, target_map_id=target)
            for target, sources in self._incoming.items()
            for src_map, npc_id in sources
        ]

    def unlock_requirements(
        self, map_id: str, npc_id: str, mode: UnlockMode
    ) -> tuple[Requirement, ...]:
        """NPC 해금 조건 간선.

        맵 해금(REQUIRES_ANY)은 항상 포함. SEQUENTIAL이면 선행 NPC 완료(REQUIRES) 추가.
        """
        npc = self._npcs.get((map_id, npc_id))
        if npc is None:
            raise KeyError(f"Unknown npc '{npc_id}' on map '{map_id}'")

        requirements = [
            Requirement(
                kind=EdgeKind.REQUIRES_ANY,
                target_map=map_id,
                sources=tuple(self._incoming.get(map_id, [])),
            )
        ]
        if mode == UnlockMode.SEQUENTIAL and npc.prerequisite_npc_id is not None:
            requirements.append(
                Requirement(
                    kind=EdgeKind.REQUIRES,
                    target_map=map_id,
                    sources=((map_id, npc.prerequisite_npc_id),),
                )
            )
        return tuple(requirements)
