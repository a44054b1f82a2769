"""진행 Service - 세션 단위 진행 저장소 보유, Core 호출, 원격 동기화

- 모든 진행 변경은 인메모리 저장소에 동기적으로 즉시 적용 (로컬 우선)
- 원격 저장은 비동기, fire-and-forget. 저장 중 추가 요청은 합쳐서
  마지막 스냅샷 1회로 전송한다 (중간 상태 보장 없음, 최종 상태로 수렴)
- 원격 장애는 error/has_retryable_error만 기록하고 로컬 진행을 유지한다
- 설정 오류(ConfigurationError)는 초기화 실패로 호출자에게 전달한다
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from src.config import settings
from src.core.event_bus import EventBus, GameEvent
from src.core.event_types import EventTypes
from src.core.progression import resolver, status
from src.core.progression.content import load_graph
from src.core.progression.enums import ConnectionStatus, DialogStep, MapStatus
from src.core.progression.errors import ConfigurationError, RemoteSyncError
from src.core.progression.graph import GraphIndex, MapConnection
from src.core.progression.models import (
    MapConfig,
    MapRef,
    NPCProgress,
    ProgressSnapshot,
    UnlockPolicy,
    WorldConfig,
)
from src.core.progression.reconciler import reconcile
from src.core.progression.store import ProgressStore
from src.services.auth_session import AuthSession
from src.services.local_cache import LocalProgressCache
from src.services.remote.base import RemoteProgressGateway
from src.services.remote.factory import get_remote_gateway

logger = logging.getLogger(__name__)

SOURCE = "progression_service"


class ProgressionService:
    """진행 엔진 세션 (단일 소유자)"""

    def __init__(
        self,
        gateway: RemoteProgressGateway,
        auth: AuthSession,
        event_bus: EventBus,
        content_dir: Optional[str | Path] = None,
        entry_map_id: Optional[str] = None,
        policy: Optional[UnlockPolicy] = None,
        local_cache: Optional[LocalProgressCache] = None,
    ):
        self._gateway = gateway
        self._auth = auth
        self._bus = event_bus
        self._content_dir = Path(content_dir or settings.CONTENT_DIR)
        self._entry_map_id = entry_map_id or settings.ENTRY_MAP_ID
        self._policy = policy or UnlockPolicy(
            all_npc_independent=settings.ALL_NPC_INDEPENDENT
        )
        self._cache = local_cache

        self._graph: Optional[GraphIndex] = None
        self._store = ProgressStore(unlocked_maps=[self._entry_map_id])

        # 상태 플래그
        self.is_loading = False
        self.is_saving = False
        self.is_progress_loaded = False
        self.error: Optional[str] = None
        self.has_retryable_error = False
        # 원격 로드 실패 후에는 서버 스냅샷을 덮어쓰지 않음 (로드 성공 시 해제)
        self._remote_load_failed = False

        # 저장 합치기
        self._save_task: Optional[asyncio.Task] = None
        self._save_requested = False

    @classmethod
    def from_settings(cls, auth: AuthSession, event_bus: EventBus) -> "ProgressionService":
        """settings 기반 구성 (REMOTE_PROVIDER, LOCAL_CACHE_PATH 등)"""
        cache = None
        if settings.LOCAL_CACHE_PATH:
            cache = LocalProgressCache(settings.LOCAL_CACHE_PATH)
        return cls(get_remote_gateway(), auth, event_bus, local_cache=cache)

    # === 속성 ===

    @property
    def remote_load_failed(self) -> bool:
        """원격 로드 실패 상태 (로드가 성공할 때까지 서버 저장 중단)"""
        return self._remote_load_failed

    @property
    def graph(self) -> GraphIndex:
        if self._graph is None:
            raise RuntimeError("Game data not loaded. Call initialize_game() first")
        return self._graph

    @property
    def store(self) -> ProgressStore:
        """현재 저장소 (읽기 전용으로 다룰 것)"""
        return self._store

    @property
    def policy(self) -> UnlockPolicy:
        return self._policy

    @property
    def unlocked_maps(self) -> frozenset[str]:
        return self._store.unlocked_maps

    def snapshot(self) -> ProgressSnapshot:
        return self._store.to_snapshot()

    # === 초기화 ===

    async def initialize_game(self, graph: Optional[GraphIndex] = None) -> None:
        """그래프 로드 → 기존 진행(메모리/로컬 캐시/원격) 확보 → 신규 생성 또는 동기화.

        Raises:
            ConfigurationError: 콘텐츠 문서 누락/오류. 게임 진입 불가.
        """
        self.is_loading = True
        self.error = None
        logger.info(
            "Initializing game (authenticated=%s)", self._auth.is_authenticated()
        )

        try:
            if graph is None:
                graph = load_graph(self._content_dir, self._entry_map_id)
        except ConfigurationError as e:
            logger.error("Failed to initialize game: %s", e)
            self.is_loading = False
            self.error = str(e)
            raise

        base = self._store
        if len(base) == 0 and self._cache is not None:
            cached = self._cache.load()
            if cached is not None and not cached.is_empty:
                logger.info("Using cached local progress (%d records)", len(cached.progress))
                base = ProgressStore.from_snapshot(cached)

        if self._auth.is_authenticated():
            try:
                remote = await self._gateway.load_progress(self._auth.identity)
                if not remote.is_empty:
                    base = ProgressStore.from_snapshot(remote)
                self.is_progress_loaded = True
                self._remote_load_failed = False
                logger.info("Loaded progress from server (%d records)", len(remote.progress))
            except RemoteSyncError as e:
                logger.warning("Failed to load progress from server, using local state: %s", e)
                self._remote_load_failed = True
                self._record_remote_failure(e, "load")

        self._graph = graph
        if len(base) == 0:
            logger.info("Creating initial progress")
            self._store = self._fresh_store()
        else:
            logger.info("Syncing existing progress with current map configs")
            unlocked = resolver.add_dependency_free_maps(graph, base.unlocked_maps)
            self._store = reconcile(base, graph, unlocked, self._policy)

        self.is_loading = False
        self._write_cache()
        self._emit(
            EventTypes.PROGRESS_INITIALIZED,
            {"records": len(self._store), "maps": len(self._store.unlocked_maps)},
        )
        self._bus.reset_chain()

        if self._auth.is_authenticated() and not self._remote_load_failed:
            await self.save_progress_to_server()

        logger.info("Game initialized successfully")

    def _fresh_store(self) -> ProgressStore:
        """초기 해금 상태 + 의존성 없는 맵 NPC까지 시드"""
        graph = self.graph
        unlocked = resolver.initial_unlocked_maps(graph)
        seeded = ProgressStore(
            resolver.compute_initial_unlock(graph, self._policy), unlocked
        )
        return reconcile(seeded, graph, unlocked, self._policy)

    # === 진행 변경 ===

    def complete_npc(self, map_id: str, npc_id: str) -> ProgressStore:
        """NPC 완료 + 연쇄 해금. 저장소 교체는 한 번에 일어난다.

        Raises:
            ProgressRecordNotFoundError: 그래프/진행 불일치 (재동기화 필요)
        """
        graph = self.graph
        logger.info("Completing NPC %s on map %s", npc_id, map_id)

        before = self._store
        after = resolver.complete_npc(graph, before, map_id, npc_id, self._policy)
        self._store = after

        maps, npcs = resolver.newly_unlocked(before, after)
        self._emit(EventTypes.NPC_COMPLETED, {"map_id": map_id, "npc_id": npc_id})
        for unlocked_map in maps:
            self._emit(
                EventTypes.MAP_UNLOCKED,
                {"map_id": unlocked_map, "by_map_id": map_id, "by_npc_id": npc_id},
            )
        for npc_map, npc in npcs:
            self._emit(EventTypes.NPC_UNLOCKED, {"map_id": npc_map, "npc_id": npc})
        self._bus.reset_chain()

        self._persist()
        return after

    def predict_unlocked_map(self, map_id: str, npc_id: str) -> Optional[str]:
        """이 NPC 완료 시 새로 열릴 맵 (완료 커밋 전 조회)"""
        if self._graph is None:
            return None
        return resolver.predict_unlocked_map(self._graph, self._store, map_id, npc_id)

    def update_npc_dialog(
        self, map_id: str, npc_id: str, step: DialogStep, fact_index: int
    ) -> NPCProgress:
        """대화 위치 저장"""
        self._store = resolver.update_dialog(self._store, map_id, npc_id, step, fact_index)
        self._emit(
            EventTypes.DIALOG_STEP_CHANGED,
            {
                "map_id": map_id,
                "npc_id": npc_id,
                "step": DialogStep(step).value,
                "fact_index": fact_index,
            },
        )
        self._bus.reset_chain()
        self._persist()
        return self._store.require(map_id, npc_id)

    def reset_progress(self) -> ProgressStore:
        """전체 진행 초기화. 완료를 되돌릴 수 있는 유일한 작업."""
        logger.info("Resetting progress")
        if self._graph is None:
            self._store = ProgressStore(unlocked_maps=[self._entry_map_id])
        else:
            self._store = self._fresh_store()
        self.error = None
        self.has_retryable_error = False

        self._emit(EventTypes.PROGRESS_RESET, {"maps": len(self._store.unlocked_maps)})
        self._bus.reset_chain()
        self._persist()
        return self._store

    def sync_progress(self) -> ProgressStore:
        """현재 그래프/정책으로 재동기화 (정책 토글, 콘텐츠 변경 후)"""
        graph = self.graph
        logger.info(
            "Syncing progress with all_npc_independent=%s",
            self._policy.all_npc_independent,
        )
        before = self._store
        self._store = reconcile(before, graph, before.unlocked_maps, self._policy)

        _, npcs = resolver.newly_unlocked(before, self._store)
        for npc_map, npc in npcs:
            self._emit(EventTypes.NPC_UNLOCKED, {"map_id": npc_map, "npc_id": npc})
        self._emit(EventTypes.PROGRESS_SYNCED, {"unlocked_npcs": len(npcs)})
        self._bus.reset_chain()

        self._persist()
        return self._store

    def set_all_npc_independent(self, enabled: bool) -> ProgressStore:
        """개발자 토글 변경 → 즉시 재동기화"""
        if enabled != self._policy.all_npc_independent:
            self._policy = UnlockPolicy(all_npc_independent=enabled)
            self._emit(EventTypes.POLICY_CHANGED, {"all_npc_independent": enabled})
        return self.sync_progress()

    def toggle_all_npc_independent(self) -> ProgressStore:
        return self.set_all_npc_independent(not self._policy.all_npc_independent)

    def clear_local_state(self) -> None:
        """로그아웃 후 로컬 진행 폐기"""
        self._store = ProgressStore(unlocked_maps=[self._entry_map_id])
        self.is_progress_loaded = False
        self.error = None
        self.has_retryable_error = False
        self._remote_load_failed = False
        if self._cache is not None:
            self._cache.clear()

    # === 원격 동기화 ===

    async def load_progress_from_server(self) -> bool:
        """원격 스냅샷으로 통째 교체. 실패 시 로컬 유지."""
        if not self._auth.is_authenticated():
            logger.warning("User not authenticated, cannot load progress from server")
            return False

        self.is_loading = True
        self.error = None
        try:
            remote = await self._gateway.load_progress(self._auth.identity)
        except RemoteSyncError as e:
            logger.error("Failed to load progress from server: %s", e)
            self.is_loading = False
            self._remote_load_failed = True
            self._record_remote_failure(e, "load")
            return False

        if remote.is_empty:
            # 신규 플레이어: 로그인 전 로컬 진행을 유지 (다음 저장에서 서버로 올라감)
            logger.info("No progress on server, keeping local progress")
        else:
            loaded = ProgressStore.from_snapshot(remote)
            if self._graph is not None:
                unlocked = resolver.add_dependency_free_maps(
                    self._graph, loaded.unlocked_maps
                )
                self._store = reconcile(loaded, self._graph, unlocked, self._policy)
            else:
                self._store = loaded

        self.is_loading = False
        self.is_progress_loaded = True
        self.has_retryable_error = False
        self._remote_load_failed = False
        self._write_cache()
        self._emit(EventTypes.PROGRESS_LOADED, {"records": len(self._store)})
        self._bus.reset_chain()
        logger.info("Progress loaded from server")
        return True

    async def save_progress_to_server(self) -> bool:
        """현재 스냅샷 전송. 실패해도 로컬 상태는 그대로."""
        if not self._auth.is_authenticated():
            logger.warning("User not authenticated, cannot save progress to server")
            return False
        if self._remote_load_failed:
            logger.warning("Remote progress not loaded, skipping save to server")
            return False

        snapshot = self._store.to_snapshot()
        self.is_saving = True
        self.error = None
        try:
            await self._gateway.save_progress(self._auth.identity, snapshot)
        except RemoteSyncError as e:
            logger.error("Failed to save progress to server: %s", e)
            self._record_remote_failure(e, "save")
            return False
        finally:
            self.is_saving = False

        self.has_retryable_error = False
        self._emit(EventTypes.PROGRESS_SAVED, {"records": len(snapshot.progress)})
        self._bus.reset_chain()
        logger.debug("Progress saved to server")
        return True

    def request_save(self) -> None:
        """비동기 저장 예약. 진행 중인 저장이 있으면 끝난 뒤 최신 스냅샷으로 1회 더."""
        if not self._auth.is_authenticated() or self._remote_load_failed:
            return
        self._save_requested = True
        if self._save_task is not None and not self._save_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, save deferred until flush()")
            return
        self._save_task = loop.create_task(self._drain_saves())

    async def _drain_saves(self) -> None:
        while self._save_requested:
            self._save_requested = False
            await self.save_progress_to_server()

    async def flush(self) -> None:
        """예약/진행 중인 저장 완료 대기"""
        if self._save_task is not None and not self._save_task.done():
            await self._save_task
        if self._save_requested:
            await self._drain_saves()

    async def save_before_logout(self) -> bool:
        """로그아웃 직전 최종 저장 1회"""
        self._save_requested = False
        if self._save_task is not None and not self._save_task.done():
            await self._save_task
        return await self.save_progress_to_server()

    def _record_remote_failure(self, error: RemoteSyncError, operation: str) -> None:
        self.error = str(error)
        self.has_retryable_error = True
        self._emit(EventTypes.REMOTE_SYNC_FAILED, {"operation": operation})
        self._bus.reset_chain()

    def _persist(self) -> None:
        self._write_cache()
        self.request_save()

    def _write_cache(self) -> None:
        if self._cache is None:
            return
        try:
            self._cache.save(self._store.to_snapshot())
        except OSError as e:
            logger.warning("Failed to write progress cache: %s", e)

    def _emit(self, event_type: str, data: dict) -> None:
        self._bus.emit(GameEvent(event_type=event_type, data=data, source=SOURCE))

    # === 조회 ===

    def is_data_loaded(self) -> bool:
        return self._graph is not None

    def is_map_unlocked(self, map_id: str) -> bool:
        if map_id == self._entry_map_id:
            return True
        return self._store.is_map_unlocked(map_id)

    def is_npc_unlocked(self, map_id: str, npc_id: str) -> bool:
        return self._store.is_npc_unlocked(map_id, npc_id)

    def is_npc_completed(self, map_id: str, npc_id: str) -> bool:
        return self._store.is_npc_completed(map_id, npc_id)

    def get_npc_progress(self, map_id: str, npc_id: str) -> Optional[NPCProgress]:
        return self._store.find(map_id, npc_id)

    def get_world_config(self) -> Optional[WorldConfig]:
        return self._graph.world if self._graph else None

    def get_map_config(self, map_id: str) -> Optional[MapConfig]:
        if self._graph is None or not self._graph.has_map(map_id):
            return None
        return self._graph.get_map(map_id)

    def get_maps(self) -> list[MapRef]:
        return list(self._graph.world.maps) if self._graph else []

    def map_status(self, map_id: str) -> MapStatus:
        return status.map_status(self.graph, self._store, map_id)

    def map_completion_ratio(self, map_id: str) -> float:
        return status.map_completion_ratio(self._store, map_id)

    def connection_statuses(self) -> list[tuple[MapConnection, ConnectionStatus]]:
        return status.connection_statuses(self.graph, self._store)
