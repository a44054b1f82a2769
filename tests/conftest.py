"""Shared test fixtures."""

from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.progression.enums import UnlockMode
from src.core.progression.graph import GraphIndex
from src.core.progression.models import MapConfig, MapRef, NpcConfig, WorldConfig
from src.db.database import get_db
from src.db.models import Base
from src.main import app

TEST_ENGINE = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(bind=TEST_ENGINE)
TestSession = sessionmaker(bind=TEST_ENGINE, autocommit=False, autoflush=False)


def _override_get_db():
    db = TestSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture()
def client() -> TestClient:
    """FastAPI TestClient wired to an in-memory SQLite database."""
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    return TestClient(app)


@pytest.fixture()
def db_session() -> Session:
    """Raw database session for direct DB assertions."""
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


# ── 그래프 빌더 ──────────────────────────────────────────────

# {map_id: (mode, [(npc_id, prerequisite, unlocks_map), ...])}
GraphSpec = dict[str, tuple[UnlockMode, list[tuple[str, Optional[str], Optional[str]]]]]


def build_graph(spec: GraphSpec, entry_map_id: str = "1") -> GraphIndex:
    world = WorldConfig(
        world_name="Test World",
        maps=tuple(MapRef(id=map_id, name=f"Map {map_id}") for map_id in spec),
    )
    maps = {
        map_id: MapConfig(
            map_id=map_id,
            unlock_mode=mode,
            npcs=tuple(
                NpcConfig(id=npc_id, prerequisite_npc_id=prereq, unlocks_map_id=unlocks)
                for npc_id, prereq, unlocks in npcs
            ),
        )
        for map_id, (mode, npcs) in spec.items()
    }
    return GraphIndex(world, maps, entry_map_id=entry_map_id)


@pytest.fixture()
def graph_factory() -> Callable[..., GraphIndex]:
    return build_graph


@pytest.fixture()
def scenario_graph() -> GraphIndex:
    """john(1) → 맵2, ana(2) → 맵3, leo(3)"""
    return build_graph(
        {
            "1": (UnlockMode.SEQUENTIAL, [("john", None, "2")]),
            "2": (UnlockMode.SEQUENTIAL, [("ana", None, "3")]),
            "3": (UnlockMode.SEQUENTIAL, [("leo", None, None)]),
        }
    )


@pytest.fixture()
def chain_graph() -> GraphIndex:
    """맵1: A → B → C (SEQUENTIAL), C가 맵2를 연다"""
    return build_graph(
        {
            "1": (
                UnlockMode.SEQUENTIAL,
                [("A", None, None), ("B", "A", None), ("C", "B", "2")],
            ),
            "2": (UnlockMode.INDEPENDENT, [("X", None, None), ("Y", "X", None)]),
        }
    )
