"""ProgressionService 통합 테스트 (InMemory 원격 + EventBus)

비동기 메서드는 asyncio.run으로 구동한다.
"""

import asyncio
from pathlib import Path

import pytest

from src.core.event_bus import EventBus
from src.core.event_types import EventTypes
from src.core.progression.enums import ConnectionStatus, DialogStep, MapStatus
from src.core.progression.errors import ConfigurationError, ProgressRecordNotFoundError
from src.core.progression.models import NPCProgress, ProgressSnapshot
from src.services.auth_session import AuthSession
from src.services.local_cache import LocalProgressCache
from src.services.progression_service import ProgressionService
from src.services.remote.memory import InMemoryProgressGateway

BUNDLED_CONTENT = Path(__file__).resolve().parents[2] / "src" / "data"
PLAYER = "player-1"


@pytest.fixture()
def setup():
    """InMemory 원격 + 미인증 세션 + EventBus + ProgressionService"""
    gateway = InMemoryProgressGateway()
    auth = AuthSession()
    bus = EventBus()
    service = ProgressionService(gateway, auth, bus, content_dir=BUNDLED_CONTENT)
    return service, gateway, auth, bus


def _collect(bus: EventBus, *event_types: str) -> list:
    received = []
    for event_type in event_types:
        bus.subscribe(event_type, lambda e: received.append((e.event_type, e.data)))
    return received


# ── 초기화 ──────────────────────────────────────────────────


class TestInitialize:
    def test_bundled_content(self, setup):
        service, gateway, _, _ = setup
        asyncio.run(service.initialize_game())

        assert service.is_data_loaded()
        assert service.unlocked_maps == {"1", "4"}
        assert service.is_npc_unlocked("1", "john")
        assert not service.is_npc_unlocked("1", "mia")
        # 의존성 없는 맵의 NPC도 시드됨
        assert service.is_npc_unlocked("4", "oda")
        # 미인증 → 원격 호출 없음
        assert gateway.load_calls == 0
        assert gateway.save_calls == 0

    def test_graph_required_before_use(self, setup):
        service, _, _, _ = setup
        with pytest.raises(RuntimeError):
            _ = service.graph
        assert service.predict_unlocked_map("1", "john") is None
        assert service.get_maps() == []
        assert service.get_world_config() is None

    def test_configuration_error_propagates(self, setup, tmp_path):
        _, gateway, auth, bus = setup
        service = ProgressionService(gateway, auth, bus, content_dir=tmp_path)
        with pytest.raises(ConfigurationError):
            asyncio.run(service.initialize_game())
        assert service.error is not None
        assert service.is_loading is False
        assert not service.is_data_loaded()

    def test_emits_initialized(self, setup, scenario_graph):
        service, _, _, bus = setup
        received = _collect(bus, EventTypes.PROGRESS_INITIALIZED)
        asyncio.run(service.initialize_game(scenario_graph))
        assert received == [(EventTypes.PROGRESS_INITIALIZED, {"records": 3, "maps": 1})]

    def test_authenticated_uses_remote(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        gateway.seed(
            PLAYER,
            ProgressSnapshot(
                progress=[
                    NPCProgress("1", "john", is_unlocked=True, is_completed=True),
                    NPCProgress("2", "ana"),
                ],
                unlocked_maps=["1", "2"],
            ),
        )
        auth.authenticate(PLAYER)
        asyncio.run(service.initialize_game(scenario_graph))

        assert service.is_progress_loaded
        assert service.is_npc_completed("1", "john")
        # reconcile: 맵2 해금 상태 → ana 해금, 누락된 leo 기록 생성
        assert service.is_npc_unlocked("2", "ana")
        assert service.get_npc_progress("3", "leo") is not None
        # 초기화 후 1회 저장
        assert gateway.save_calls == 1

    def test_new_player_creates_fresh_progress(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        auth.authenticate(PLAYER)
        asyncio.run(service.initialize_game(scenario_graph))

        assert service.unlocked_maps == {"1"}
        stored = gateway.stored(PLAYER)
        assert stored is not None
        assert len(stored.progress) == 3

    def test_remote_failure_falls_back_to_local(self, setup, scenario_graph):
        service, gateway, auth, bus = setup
        received = _collect(bus, EventTypes.REMOTE_SYNC_FAILED)
        gateway.fail_loads = True
        gateway.fail_saves = True
        auth.authenticate(PLAYER)

        asyncio.run(service.initialize_game(scenario_graph))

        assert service.is_data_loaded()
        assert service.is_npc_unlocked("1", "john")
        assert service.has_retryable_error
        assert service.error is not None
        assert [data["operation"] for _, data in received] == ["load"]
        assert gateway.save_calls == 0

    def test_load_failure_does_not_overwrite_server(self, setup, scenario_graph):
        """로드 실패 - 기본 진행으로 서버 스냅샷을 덮어쓰지 않고 오류 상태 유지"""
        service, gateway, auth, _ = setup
        seeded = ProgressSnapshot(
            progress=[
                NPCProgress("1", "john", is_unlocked=True, is_completed=True),
                NPCProgress("2", "ana", is_unlocked=True, is_completed=True),
            ],
            unlocked_maps=["1", "2", "3"],
        )
        gateway.seed(PLAYER, seeded)
        gateway.fail_loads = True
        auth.authenticate(PLAYER)

        async def scenario():
            await service.initialize_game(scenario_graph)
            service.complete_npc("1", "john")
            await service.flush()

        asyncio.run(scenario())

        assert gateway.save_calls == 0
        assert gateway.stored(PLAYER) == seeded
        assert service.remote_load_failed
        assert service.has_retryable_error
        assert service.error is not None

    def test_existing_memory_progress_reconciled(self, setup, scenario_graph):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")
        asyncio.run(service.initialize_game(scenario_graph))
        assert service.is_npc_completed("1", "john")
        assert service.is_map_unlocked("2")


# ── 진행 변경 ───────────────────────────────────────────────


class TestCompleteNpc:
    def test_scenario(self, setup, scenario_graph):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))

        service.complete_npc("1", "john")
        assert service.unlocked_maps == {"1", "2"}
        assert service.is_npc_unlocked("2", "ana")

        service.complete_npc("2", "ana")
        assert service.unlocked_maps == {"1", "2", "3"}
        assert service.is_npc_unlocked("3", "leo")

    def test_events(self, setup, scenario_graph):
        service, _, _, bus = setup
        asyncio.run(service.initialize_game(scenario_graph))
        received = _collect(
            bus, EventTypes.NPC_COMPLETED, EventTypes.MAP_UNLOCKED, EventTypes.NPC_UNLOCKED
        )

        service.complete_npc("1", "john")

        assert received == [
            (EventTypes.NPC_COMPLETED, {"map_id": "1", "npc_id": "john"}),
            (EventTypes.MAP_UNLOCKED, {"map_id": "2", "by_map_id": "1", "by_npc_id": "john"}),
            (EventTypes.NPC_UNLOCKED, {"map_id": "2", "npc_id": "ana"}),
        ]

    def test_sequential_emits_each_unlock(self, setup, chain_graph):
        service, _, _, bus = setup
        asyncio.run(service.initialize_game(chain_graph))
        received = _collect(bus, EventTypes.NPC_UNLOCKED)

        service.complete_npc("1", "A")
        service.complete_npc("1", "B")

        assert [data["npc_id"] for _, data in received] == ["B", "C"]

    def test_unknown_record(self, setup, scenario_graph):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        with pytest.raises(ProgressRecordNotFoundError):
            service.complete_npc("1", "ghost")

    def test_handler_failure_does_not_roll_back(self, setup, scenario_graph):
        service, _, _, bus = setup
        asyncio.run(service.initialize_game(scenario_graph))

        def broken(event):
            raise RuntimeError("ui exploded")

        bus.subscribe(EventTypes.MAP_UNLOCKED, broken)
        service.complete_npc("1", "john")
        assert service.is_map_unlocked("2")

    def test_update_dialog(self, setup, scenario_graph):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        record = service.update_npc_dialog("1", "john", DialogStep.FACT, 2)
        assert record.dialog_step == DialogStep.FACT
        assert record.fact_index == 2
        assert service.get_npc_progress("1", "john").fact_index == 2

    def test_reset(self, setup, scenario_graph):
        service, _, _, bus = setup
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")
        received = _collect(bus, EventTypes.PROGRESS_RESET)

        service.reset_progress()

        assert service.unlocked_maps == {"1"}
        assert not service.is_npc_completed("1", "john")
        assert len(received) == 1


class TestPolicyToggle:
    def test_toggle_unlocks_sequential_chain(self, setup, chain_graph):
        service, _, _, bus = setup
        asyncio.run(service.initialize_game(chain_graph))
        received = _collect(bus, EventTypes.POLICY_CHANGED, EventTypes.PROGRESS_SYNCED)

        service.set_all_npc_independent(True)

        assert service.policy.all_npc_independent
        assert service.is_npc_unlocked("1", "B")
        assert service.is_npc_unlocked("1", "C")
        assert not service.is_npc_unlocked("2", "X")
        assert [t for t, _ in received] == [EventTypes.POLICY_CHANGED, EventTypes.PROGRESS_SYNCED]

    def test_toggle_off_does_not_relock(self, setup, chain_graph):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game(chain_graph))
        service.toggle_all_npc_independent()
        service.toggle_all_npc_independent()
        assert not service.policy.all_npc_independent
        assert service.is_npc_unlocked("1", "C")

    def test_toggle_applies_to_cascade(self, setup, chain_graph):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game(chain_graph))
        service.set_all_npc_independent(True)
        service.complete_npc("1", "C")
        assert service.is_npc_unlocked("2", "Y")


# ── 원격 저장 ───────────────────────────────────────────────


class TestRemoteSave:
    def test_unauthenticated_never_saves(self, setup, scenario_graph):
        service, gateway, _, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")
        assert asyncio.run(service.save_progress_to_server()) is False
        assert gateway.save_calls == 0

    def test_deferred_save_flushed(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        auth.authenticate(PLAYER)
        asyncio.run(service.initialize_game(scenario_graph))
        assert gateway.save_calls == 1

        # 이벤트 루프 밖 → 저장 예약만
        service.complete_npc("1", "john")
        assert gateway.save_calls == 1

        asyncio.run(service.flush())
        assert gateway.save_calls == 2
        assert gateway.stored(PLAYER).unlocked_maps == ["1", "2"]

    def test_saves_coalesce(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        auth.authenticate(PLAYER)

        async def scenario():
            await service.initialize_game(scenario_graph)
            gateway.delay = 0.01
            service.complete_npc("1", "john")
            await asyncio.sleep(0)  # 첫 저장이 전송 중인 상태
            service.update_npc_dialog("2", "ana", DialogStep.FACT, 1)
            service.complete_npc("2", "ana")
            service.update_npc_dialog("3", "leo", DialogStep.FACT, 0)
            await service.flush()

        asyncio.run(scenario())

        # 초기화 1 + 전송 중이던 저장 1 + 합쳐진 후속 저장 1
        assert gateway.save_calls == 3
        stored = gateway.stored(PLAYER)
        assert stored.unlocked_maps == ["1", "2", "3"]
        assert service.is_saving is False

    def test_save_failure_keeps_local(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        auth.authenticate(PLAYER)
        asyncio.run(service.initialize_game(scenario_graph))
        gateway.fail_saves = True

        async def scenario():
            service.complete_npc("1", "john")
            await service.flush()

        asyncio.run(scenario())
        assert service.is_npc_completed("1", "john")
        assert service.has_retryable_error

        gateway.fail_saves = False
        assert asyncio.run(service.save_progress_to_server()) is True
        assert service.has_retryable_error is False
        assert gateway.stored(PLAYER).unlocked_maps == ["1", "2"]

    def test_save_before_logout(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        auth.authenticate(PLAYER)
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")

        assert asyncio.run(service.save_before_logout()) is True
        assert gateway.stored(PLAYER).unlocked_maps == ["1", "2"]


class TestRemoteLoad:
    def test_requires_authentication(self, setup):
        service, _, _, _ = setup
        assert asyncio.run(service.load_progress_from_server()) is False

    def test_replaces_local(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        gateway.seed(
            PLAYER,
            ProgressSnapshot(
                progress=[
                    NPCProgress("1", "john", is_unlocked=True, is_completed=True),
                    NPCProgress("2", "ana", is_unlocked=True, is_completed=True),
                ],
                unlocked_maps=["1", "2", "3"],
            ),
        )
        auth.authenticate(PLAYER)

        assert asyncio.run(service.load_progress_from_server()) is True
        assert service.is_npc_completed("2", "ana")
        assert service.is_npc_unlocked("3", "leo")
        assert service.is_progress_loaded

    def test_empty_remote_keeps_local(self, setup, scenario_graph):
        service, _, auth, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")
        auth.authenticate(PLAYER)

        assert asyncio.run(service.load_progress_from_server()) is True
        assert service.is_npc_completed("1", "john")

    def test_failure_keeps_local(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")
        auth.authenticate(PLAYER)
        gateway.fail_loads = True

        assert asyncio.run(service.load_progress_from_server()) is False
        assert service.is_npc_completed("1", "john")
        assert service.has_retryable_error
        assert service.is_loading is False
        assert service.remote_load_failed

    def test_saves_resume_after_successful_load(self, setup, scenario_graph):
        service, gateway, auth, _ = setup
        asyncio.run(service.initialize_game(scenario_graph))
        auth.authenticate(PLAYER)
        gateway.fail_loads = True
        assert asyncio.run(service.load_progress_from_server()) is False
        assert asyncio.run(service.save_progress_to_server()) is False
        assert gateway.save_calls == 0

        gateway.fail_loads = False
        assert asyncio.run(service.load_progress_from_server()) is True
        assert not service.remote_load_failed
        assert not service.has_retryable_error

        service.complete_npc("1", "john")
        asyncio.run(service.flush())
        assert gateway.save_calls == 1
        assert gateway.stored(PLAYER).unlocked_maps == ["1", "2"]


class TestLocalCache:
    def test_progress_survives_restart(self, setup, scenario_graph, tmp_path):
        _, gateway, auth, bus = setup
        cache = LocalProgressCache(tmp_path / "progress.json")
        first = ProgressionService(gateway, auth, bus, local_cache=cache)
        asyncio.run(first.initialize_game(scenario_graph))
        first.complete_npc("1", "john")

        second = ProgressionService(gateway, auth, bus, local_cache=cache)
        asyncio.run(second.initialize_game(scenario_graph))
        assert second.is_npc_completed("1", "john")
        assert second.is_npc_unlocked("2", "ana")

    def test_clear_local_state(self, setup, scenario_graph, tmp_path):
        _, gateway, auth, bus = setup
        cache = LocalProgressCache(tmp_path / "progress.json")
        service = ProgressionService(gateway, auth, bus, local_cache=cache)
        asyncio.run(service.initialize_game(scenario_graph))
        service.complete_npc("1", "john")

        service.clear_local_state()

        assert len(service.store) == 0
        assert service.is_map_unlocked("1")
        assert not service.is_map_unlocked("2")
        assert cache.load() is None


class TestFromSettings:
    def test_defaults(self, monkeypatch):
        from src.config import settings

        monkeypatch.setattr(settings, "REMOTE_PROVIDER", "memory")
        monkeypatch.setattr(settings, "LOCAL_CACHE_PATH", None)
        service = ProgressionService.from_settings(AuthSession(), EventBus())
        assert service._gateway.name == "memory"
        assert service._cache is None

    def test_local_cache_path(self, monkeypatch, tmp_path):
        from src.config import settings

        monkeypatch.setattr(settings, "LOCAL_CACHE_PATH", str(tmp_path / "p.json"))
        service = ProgressionService.from_settings(AuthSession(), EventBus())
        assert service._cache.path == tmp_path / "p.json"

    def test_default_content_found_from_any_cwd(self, monkeypatch, tmp_path):
        from src.config import settings

        monkeypatch.setattr(settings, "LOCAL_CACHE_PATH", None)
        monkeypatch.chdir(tmp_path)
        assert Path(settings.CONTENT_DIR).is_absolute()

        service = ProgressionService.from_settings(AuthSession(), EventBus())
        asyncio.run(service.initialize_game())
        assert service.is_data_loaded()
        assert service.unlocked_maps == {"1", "4"}


class TestSelectors:
    def test_map_queries(self, setup):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game())

        assert [m.id for m in service.get_maps()] == ["1", "2", "3", "4"]
        assert service.get_world_config().world_name == "Archipelago"
        assert service.get_map_config("3").unlock_mode.value == "independent"
        assert service.get_map_config("404") is None
        assert service.map_status("2") == MapStatus.LOCKED

        service.complete_npc("1", "john")
        assert service.map_status("2") == MapStatus.UNLOCKED
        assert service.map_completion_ratio("1") == 0.5
        statuses = {c.npc_id: s for c, s in service.connection_statuses()}
        assert statuses["john"] == ConnectionStatus.MAP_UNLOCKED

    def test_prediction(self, setup):
        service, _, _, _ = setup
        asyncio.run(service.initialize_game())
        assert service.predict_unlocked_map("1", "john") == "2"
        assert service.predict_unlocked_map("1", "mia") is None
