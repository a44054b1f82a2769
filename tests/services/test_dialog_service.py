"""DialogService 통합 테스트 (대화 상태 기계 + ProgressionService)"""

import asyncio

import pytest

from src.core.event_bus import EventBus
from src.core.event_types import EventTypes
from src.core.progression.enums import DialogStep
from src.core.progression.errors import DialogTransitionError, ProgressRecordNotFoundError
from src.services.auth_session import AuthSession
from src.services.dialog_service import DialogService
from src.services.progression_service import ProgressionService
from src.services.remote.memory import InMemoryProgressGateway


@pytest.fixture()
def setup(scenario_graph):
    """초기화된 ProgressionService + DialogService"""
    bus = EventBus()
    progression = ProgressionService(InMemoryProgressGateway(), AuthSession(), bus)
    asyncio.run(progression.initialize_game(scenario_graph))
    return DialogService(progression, bus), progression, bus


class TestOpen:
    def test_open_fresh_npc(self, setup):
        dialogs, _, bus = setup
        opened = []
        bus.subscribe(EventTypes.DIALOG_OPENED, lambda e: opened.append(e.data))

        state = dialogs.open("1", "john", fact_count=3)

        assert state.step == DialogStep.QUESTION
        assert dialogs.is_open
        assert opened == [{"map_id": "1", "npc_id": "john", "step": "question"}]

    def test_locked_npc_rejected(self, setup):
        dialogs, _, _ = setup
        with pytest.raises(DialogTransitionError):
            dialogs.open("2", "ana", fact_count=3)
        assert not dialogs.is_open

    def test_unknown_npc(self, setup):
        dialogs, _, _ = setup
        with pytest.raises(ProgressRecordNotFoundError):
            dialogs.open("1", "ghost", fact_count=1)

    def test_single_active_dialog(self, setup):
        dialogs, progression, _ = setup
        progression.complete_npc("1", "john")
        dialogs.open("1", "john", fact_count=3)
        dialogs.start_facts()

        dialogs.open("2", "ana", fact_count=2)

        assert dialogs.state.npc_id == "ana"
        # 이전 대화 위치는 닫힐 때 저장됨
        john = progression.get_npc_progress("1", "john")
        assert john.dialog_step == DialogStep.FACT


class TestFullDialog:
    def test_resume_after_close(self, setup):
        dialogs, progression, _ = setup
        dialogs.open("1", "john", fact_count=3)
        dialogs.start_facts()
        dialogs.next_fact()
        dialogs.close()

        record = progression.get_npc_progress("1", "john")
        assert (record.dialog_step, record.fact_index) == (DialogStep.FACT, 1)
        assert not record.is_completed

        state = dialogs.open("1", "john", fact_count=3)
        assert state.step == DialogStep.FACT
        assert state.fact_index == 1

    def test_map_unlock_accept(self, setup):
        dialogs, progression, bus = setup
        travel = []
        bus.subscribe(EventTypes.MAP_TRAVEL_REQUESTED, lambda e: travel.append(e.data))

        dialogs.open("1", "john", fact_count=2)
        dialogs.start_facts()
        dialogs.next_fact()
        transition = dialogs.next_fact()

        assert transition.state.step == DialogStep.MAP_UNLOCK_NOTIFICATION
        assert transition.state.unlocked_map_id == "2"
        # 알림 단계에서는 아직 미완료
        assert not progression.is_npc_completed("1", "john")

        assert dialogs.accept_map_transition() == "2"
        assert progression.is_npc_completed("1", "john")
        assert progression.is_map_unlocked("2")
        assert travel == [{"map_id": "2"}]
        assert not dialogs.is_open

    def test_map_unlock_decline_still_completes(self, setup):
        dialogs, progression, _ = setup
        dialogs.open("1", "john", fact_count=1)
        dialogs.start_facts()
        dialogs.next_fact()

        dialogs.decline_map_transition()

        assert progression.is_npc_completed("1", "john")
        assert progression.is_npc_unlocked("2", "ana")

    def test_completion_without_map(self, setup):
        dialogs, progression, bus = setup
        progression.complete_npc("1", "john")
        progression.complete_npc("2", "ana")
        closed = []
        bus.subscribe(EventTypes.DIALOG_CLOSED, lambda e: closed.append(e.data))

        dialogs.open("3", "leo", fact_count=1)
        dialogs.start_facts()
        transition = dialogs.next_fact()

        assert transition.complete is True
        assert progression.is_npc_completed("3", "leo")
        assert closed == [{"map_id": "3", "npc_id": "leo", "completed": True}]

    def test_replay_completed_npc(self, setup):
        dialogs, progression, _ = setup
        progression.complete_npc("1", "john")

        state = dialogs.open("1", "john", fact_count=2)
        assert state.step == DialogStep.QUESTION

        dialogs.start_facts()
        dialogs.next_fact()
        transition = dialogs.next_fact()
        # 이미 열린 맵이라 알림 없이 종료
        assert transition.travel_to is None
        assert not dialogs.is_open
        assert progression.is_npc_completed("1", "john")

    def test_invalid_step(self, setup):
        dialogs, _, _ = setup
        dialogs.open("1", "john", fact_count=2)
        with pytest.raises(DialogTransitionError):
            dialogs.next_fact()
        with pytest.raises(DialogTransitionError):
            dialogs.accept_map_transition()

    def test_close_when_closed_is_noop(self, setup):
        dialogs, _, _ = setup
        dialogs.close()
        assert not dialogs.is_open
