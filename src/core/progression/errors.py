"""진행 엔진 오류 분류

- ConfigurationError: 콘텐츠 로드 시 치명적. 초기화 실패로 호출자에게 전달.
- RemoteSyncError: 원격 저장소 일시 장애. 로컬 상태로 계속 진행.
- ProgressRecordNotFoundError: 그래프와 진행 기록 불일치 (통합 오류). 즉시 전달.
"""


class ConfigurationError(ValueError):
    """맵/NPC 설정 문서 누락 또는 잘못된 참조"""


class RemoteSyncError(RuntimeError):
    """원격 진행 저장소 로드/저장 실패"""


class ProgressRecordNotFoundError(KeyError):
    """(map_id, npc_id)에 해당하는 진행 기록 없음"""

    def __init__(self, map_id: str, npc_id: str):
        super().__init__(f"No progress record for npc '{npc_id}' on map '{map_id}'")
        self.map_id = map_id
        self.npc_id = npc_id


class DialogTransitionError(ValueError):
    """현재 대화 상태에서 허용되지 않는 전이"""
