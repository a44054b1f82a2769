"""NPC 대화 진행 Service - 대화 상태 기계 ↔ 진행 Service 연결

활성 대화는 항상 하나. 단계마다 (dialog_step, fact_index)를 저장해서
세션을 다시 열면 중간부터 재개된다.
"""

import logging
from typing import Optional

from src.core.event_bus import EventBus, GameEvent
from src.core.event_types import EventTypes
from src.core.progression import dialog
from src.core.progression.dialog import CLOSED, DialogState, DialogTransition
from src.core.progression.errors import DialogTransitionError, ProgressRecordNotFoundError
from src.services.progression_service import ProgressionService

logger = logging.getLogger(__name__)

SOURCE = "dialog_service"


class DialogService:
    """단일 활성 대화 관리"""

    def __init__(self, progression: ProgressionService, event_bus: EventBus):
        self._progression = progression
        self._bus = event_bus
        self._state: DialogState = CLOSED

    @property
    def state(self) -> DialogState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state.is_open

    # === 공개 API ===

    def open(self, map_id: str, npc_id: str, fact_count: int) -> DialogState:
        """대화 시작. 다른 대화가 열려 있으면 먼저 닫는다.

        fact_count는 대화 콘텐츠 제공자가 알려주는 NPC의 사실 개수.
        """
        if self._state.is_open:
            logger.info(
                "Closing dialog with %s before opening %s", self._state.npc_id, npc_id
            )
            self.close()

        record = self._progression.get_npc_progress(map_id, npc_id)
        if record is None:
            raise ProgressRecordNotFoundError(map_id, npc_id)
        if not record.is_unlocked:
            raise DialogTransitionError(f"NPC '{npc_id}' on map '{map_id}' is locked")

        self._state = dialog.open_dialog(map_id, npc_id, fact_count, record)
        self._emit(
            EventTypes.DIALOG_OPENED,
            {"map_id": map_id, "npc_id": npc_id, "step": self._state.step.value},
        )
        return self._state

    def start_facts(self) -> DialogState:
        """질문 수락 → 첫 사실"""
        return self._apply(dialog.start_facts(self._state)).state

    def next_fact(self) -> DialogTransition:
        """다음 사실. 마지막 사실 이후엔 맵 해금 알림 또는 완료."""
        pending = None
        if self._state.is_open:
            pending = self._progression.predict_unlocked_map(
                self._state.map_id, self._state.npc_id
            )
        return self._apply(dialog.next_fact(self._state, pending))

    def accept_map_transition(self) -> Optional[str]:
        """완료 커밋 + 이동할 맵 반환"""
        transition = self._apply(dialog.resolve_map_transition(self._state, accept=True))
        if transition.travel_to is not None:
            self._emit(EventTypes.MAP_TRAVEL_REQUESTED, {"map_id": transition.travel_to})
        return transition.travel_to

    def decline_map_transition(self) -> None:
        """완료 커밋만, 이동 없음"""
        self._apply(dialog.resolve_map_transition(self._state, accept=False))

    def close(self) -> None:
        """명시적 닫기. 마지막 위치 보존."""
        if not self._state.is_open:
            return
        self._apply(dialog.close_dialog(self._state))

    # === 내부 ===

    def _apply(self, transition: DialogTransition) -> DialogTransition:
        map_id, npc_id = self._state.map_id, self._state.npc_id

        if transition.persist is not None:
            step, fact_index = transition.persist
            self._progression.update_npc_dialog(map_id, npc_id, step, fact_index)

        if transition.complete:
            self._progression.complete_npc(map_id, npc_id)

        self._state = transition.state
        if not self._state.is_open:
            self._emit(
                EventTypes.DIALOG_CLOSED,
                {"map_id": map_id, "npc_id": npc_id, "completed": transition.complete},
            )
        return transition

    def _emit(self, event_type: str, data: dict) -> None:
        self._bus.emit(GameEvent(event_type=event_type, data=data, source=SOURCE))
        self._bus.reset_chain()
