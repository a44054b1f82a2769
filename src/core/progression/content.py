"""콘텐츠 로드 - worldConfig.json + maps/map{id}.json

문서 형식은 저작 도구의 camelCase 키를 그대로 따른다.
맵 문서 하나라도 로드 실패하면 초기화 전체가 실패한다 (ConfigurationError).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .enums import UnlockMode
from .errors import ConfigurationError
from .graph import DEFAULT_ENTRY_MAP_ID, GraphIndex
from .models import MapConfig, MapRef, NpcConfig, WorldConfig

logger = logging.getLogger(__name__)

WORLD_CONFIG_FILE = "world_config.json"
MAPS_DIR = "maps"


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def world_config_from_dict(raw: dict[str, Any]) -> WorldConfig:
    """worldConfig 문서 → WorldConfig"""
    try:
        maps = tuple(
            MapRef(
                id=str(m["id"]),
                name=m.get("name", ""),
                description=m.get("description", ""),
            )
            for m in raw["maps"]
        )
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Malformed world config: {e}") from e

    return WorldConfig(
        world_name=raw.get("worldName", ""),
        version=str(raw.get("version", "")),
        description=raw.get("description", ""),
        maps=maps,
    )


def map_config_from_dict(raw: dict[str, Any]) -> MapConfig:
    """맵 문서 → MapConfig. 렌더링용 필드(terrain, environment 등)는 무시."""
    try:
        npcs = tuple(
            NpcConfig(
                id=str(n["id"]),
                name=n.get("name", ""),
                prerequisite_npc_id=_optional_id(n.get("prerequisiteNpcId")),
                unlocks_map_id=_optional_id(n.get("unlocksMapId")),
            )
            for n in raw.get("npcs", [])
        )
        unlock_mode = UnlockMode(raw.get("npcUnlockMode", UnlockMode.SEQUENTIAL.value))
        return MapConfig(map_id=str(raw["mapId"]), unlock_mode=unlock_mode, npcs=npcs)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Malformed map config: {e}") from e


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Content document not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e


def load_world_config(path: str | Path) -> WorldConfig:
    return world_config_from_dict(_read_json(Path(path)))


def load_map_config(path: str | Path) -> MapConfig:
    return map_config_from_dict(_read_json(Path(path)))


def load_graph(
    content_dir: str | Path,
    entry_map_id: str = DEFAULT_ENTRY_MAP_ID,
) -> GraphIndex:
    """콘텐츠 디렉터리 전체 로드 → GraphIndex.

    content_dir/world_config.json
    content_dir/maps/map{id}.json
    """
    content_dir = Path(content_dir)
    world = load_world_config(content_dir / WORLD_CONFIG_FILE)

    maps: dict[str, MapConfig] = {}
    for ref in world.maps:
        maps[ref.id] = load_map_config(content_dir / MAPS_DIR / f"map{ref.id}.json")

    logger.info("Loaded %d map documents from %s", len(maps), content_dir)
    return GraphIndex(world, maps, entry_map_id=entry_map_id)
