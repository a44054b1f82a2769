"""NPC 대화/완료 하위 상태 기계 (순수 전이)

NONE → QUESTION → FACT(0) → … → FACT(n-1)
     → {종료(완료) | MAP_UNLOCK_NOTIFICATION → 종료(완료)}
어느 상태에서든 close → 종료(닫힘, 마지막 위치 보존)

진행 기록 저장과 완료 커밋은 DialogService가 담당한다.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .enums import DialogStep
from .errors import DialogTransitionError
from .models import NPCProgress


@dataclass(frozen=True)
class DialogState:
    """활성 대화 1개의 상태 (동시에 하나만 존재)"""

    map_id: Optional[str] = None
    npc_id: Optional[str] = None
    step: DialogStep = DialogStep.NONE
    fact_index: int = 0
    fact_count: int = 0
    unlocked_map_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.step != DialogStep.NONE

    @property
    def last_fact_index(self) -> int:
        return max(self.fact_count - 1, 0)


CLOSED = DialogState()


@dataclass(frozen=True)
class DialogTransition:
    """전이 결과.

    persist: 저장할 (step, fact_index). None이면 저장 안 함.
    complete: True면 NPC 완료를 커밋해야 함.
    travel_to: 맵 이동 수락 시 이동할 맵.
    """

    state: DialogState
    persist: Optional[tuple[DialogStep, int]] = None
    complete: bool = False
    travel_to: Optional[str] = None


def _require_step(state: DialogState, *allowed: DialogStep) -> None:
    if state.step not in allowed:
        names = ", ".join(s.value for s in allowed)
        raise DialogTransitionError(
            f"Dialog is in step '{state.step.value}', expected one of: {names}"
        )


def open_dialog(
    map_id: str,
    npc_id: str,
    fact_count: int,
    record: Optional[NPCProgress],
) -> DialogState:
    """대화 열기. 미완료 NPC는 저장된 위치에서 재개, 완료 NPC는 처음부터."""
    if fact_count < 0:
        raise ValueError(f"fact_count must be >= 0, got {fact_count}")

    step = DialogStep.QUESTION
    fact_index = 0
    if record is not None and not record.is_completed:
        if record.dialog_step == DialogStep.FACT:
            step = DialogStep.FACT
            fact_index = min(record.fact_index, max(fact_count - 1, 0))

    return DialogState(
        map_id=map_id,
        npc_id=npc_id,
        step=step,
        fact_index=fact_index,
        fact_count=fact_count,
    )


def start_facts(state: DialogState) -> DialogTransition:
    """QUESTION → FACT(0): 플레이어가 수락"""
    _require_step(state, DialogStep.QUESTION)
    new_state = replace(state, step=DialogStep.FACT, fact_index=0)
    return DialogTransition(state=new_state, persist=(DialogStep.FACT, 0))


def next_fact(state: DialogState, pending_map_id: Optional[str]) -> DialogTransition:
    """FACT(i) → FACT(i+1), 마지막이면 알림 또는 종료.

    pending_map_id: 완료 시 새로 열릴 맵 (Resolver 사전 조회 결과)
    """
    _require_step(state, DialogStep.FACT)

    nxt = state.fact_index + 1
    if nxt < state.fact_count:
        new_state = replace(state, fact_index=nxt)
        return DialogTransition(state=new_state, persist=(DialogStep.FACT, nxt))

    persist = (DialogStep.FACT, state.last_fact_index)
    if pending_map_id is not None:
        new_state = replace(
            state,
            step=DialogStep.MAP_UNLOCK_NOTIFICATION,
            fact_index=state.last_fact_index,
            unlocked_map_id=pending_map_id,
        )
        return DialogTransition(state=new_state, persist=persist)

    return DialogTransition(state=CLOSED, persist=persist, complete=True)


def resolve_map_transition(state: DialogState, accept: bool) -> DialogTransition:
    """맵 해금 알림 응답. 수락/거절 모두 완료를 커밋한다. 거절은 이동만 생략."""
    _require_step(state, DialogStep.MAP_UNLOCK_NOTIFICATION)
    return DialogTransition(
        state=CLOSED,
        complete=True,
        travel_to=state.unlocked_map_id if accept else None,
    )


def close_dialog(state: DialogState) -> DialogTransition:
    """명시적 닫기. QUESTION/FACT 위치는 보존 저장."""
    if state.step in (DialogStep.QUESTION, DialogStep.FACT):
        return DialogTransition(state=CLOSED, persist=(state.step, state.fact_index))
    return DialogTransition(state=CLOSED)
