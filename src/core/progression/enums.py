"""진행 시스템 열거형"""

from enum import Enum


class UnlockMode(str, Enum):
    SEQUENTIAL = "sequential"
    INDEPENDENT = "independent"


class DialogStep(str, Enum):
    NONE = "none"
    QUESTION = "question"
    FACT = "fact"
    MAP_UNLOCK_NOTIFICATION = "map_unlock_notification"


class MapStatus(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


class ConnectionStatus(str, Enum):
    """맵 간 연결선 상태 (출발 NPC 완료 여부)"""

    LOCKED = "connection-locked"
    MAP_UNLOCKED = "map-unlocked"


class EdgeKind(str, Enum):
    """해금 조건 그래프의 간선 종류"""

    REQUIRES = "requires_completion_of"  # 같은 맵 선행 NPC
    REQUIRES_ANY = "requires_completion_of_any"  # 다른 맵에서 이 맵을 여는 NPC들
