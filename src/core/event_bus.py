"""EventBus - 진행 엔진 ↔ 구독자(UI, 저장, 대화) 이벤트 통신

규칙:
- 이벤트는 식별자(map_id, npc_id)만 전달한다. 저장소 객체 전달 금지
- 전파 깊이 최대 MAX_DEPTH 단계
- 한 작업(완료 처리 1회 등) 안에서 동일 이벤트(동일 데이터) 중복 발행 금지
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

from src.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5  # 한 작업 내 이벤트 전파 최대 깊이


@dataclass
class GameEvent:
    """이벤트 데이터 컨테이너

    Args:
        event_type: 이벤트 유형 (예: "npc_completed", "map_unlocked")
        data: 이벤트 데이터 (ID 위주)
        source: 발행한 서비스 이름
    """

    event_type: str
    data: Dict[str, Any]
    source: str

    _depth: int = field(default=0, repr=False)

    @property
    def chain_key(self) -> str:
        payload = ",".join(f"{k}={self.data[k]}" for k in sorted(self.data))
        return f"{self.source}:{self.event_type}:{payload}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """동기식 이벤트 버스

    사용 패턴:
        bus = EventBus()
        bus.subscribe("map_unlocked", menu.refresh)
        bus.emit(GameEvent(event_type="map_unlocked", data={"map_id": "2"}, source="progression"))
        bus.reset_chain()  # 작업 종료 시
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._current_depth: int = 0
        self._emitted_in_chain: Set[str] = set()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 등록"""
        self._handlers[event_type].append(handler)
        logger.debug(f"EventBus 구독: {event_type} → {handler.__qualname__}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 해제"""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(
                    f"EventBus 구독 해제: {event_type} → {handler.__qualname__}"
                )
            except ValueError:
                logger.warning(f"핸들러 미등록: {event_type} → {handler.__qualname__}")

    def emit(self, event: GameEvent) -> None:
        """이벤트 발행. 등록된 핸들러를 동기 호출.

        핸들러 예외는 로그만 남기고 다음 핸들러로 진행한다.
        진행 저장소는 이미 갱신된 상태이므로 구독자 실패가 진행을 되돌리지 않는다.
        """
        if self._current_depth >= MAX_DEPTH:
            logger.warning(
                f"EventBus 전파 깊이 초과 ({MAX_DEPTH}): "
                f"{event.source}:{event.event_type} 무시됨"
            )
            return

        chain_key = event.chain_key
        if chain_key in self._emitted_in_chain:
            logger.debug(f"EventBus 중복 이벤트 차단: {chain_key}")
            return

        self._emitted_in_chain.add(chain_key)
        event._depth = self._current_depth

        handlers = list(self._handlers.get(event.event_type, []))
        if not handlers:
            logger.debug(f"EventBus: {event.event_type} 구독자 없음")
            return

        logger.debug(
            f"EventBus 전파: {event.event_type} (source={event.source}, "
            f"depth={self._current_depth}, handlers={len(handlers)})"
        )

        self._current_depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        f"EventBus 핸들러 에러: {handler.__qualname__} "
                        f"(event={event.event_type})"
                    )
        finally:
            self._current_depth -= 1

    def reset_chain(self) -> None:
        """작업 종료 시 호출. 중복 추적 초기화."""
        self._emitted_in_chain.clear()
        self._current_depth = 0

    def clear(self) -> None:
        """모든 구독 해제 (테스트용)"""
        self._handlers.clear()
        self.reset_chain()

    @property
    def handler_count(self) -> int:
        """등록된 총 핸들러 수"""
        return sum(len(h) for h in self._handlers.values())
