"""API request/response schemas.

Wire format follows the game client: camelCase keys
(``gameProgress``, ``unlockedMaps``, ``isUnlocked`` ...).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.progression.enums import DialogStep
from src.core.progression.models import NPCProgress, ProgressSnapshot


class CamelModel(BaseModel):
    """camelCase 직렬화 기본 모델 (snake_case 입력도 허용)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Progress ===


class GameProgressItem(CamelModel):
    """NPC 1명의 진행 기록"""

    map_id: str
    npc_id: str
    is_unlocked: bool = False
    is_completed: bool = False
    dialog_step: DialogStep = DialogStep.QUESTION
    fact_index: int = Field(default=0, ge=0)

    @classmethod
    def from_core(cls, record: NPCProgress) -> "GameProgressItem":
        return cls(
            map_id=record.map_id,
            npc_id=record.npc_id,
            is_unlocked=record.is_unlocked,
            is_completed=record.is_completed,
            dialog_step=record.dialog_step,
            fact_index=record.fact_index,
        )

    def to_core(self) -> NPCProgress:
        return NPCProgress(
            map_id=self.map_id,
            npc_id=self.npc_id,
            is_unlocked=self.is_unlocked,
            is_completed=self.is_completed,
            dialog_step=self.dialog_step,
            fact_index=self.fact_index,
        )


class ProgressPayload(CamelModel):
    """진행 스냅샷 (저장 요청 / 로드 응답 공용)"""

    game_progress: list[GameProgressItem] = Field(default_factory=list)
    unlocked_maps: list[str] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: ProgressSnapshot) -> "ProgressPayload":
        return cls(
            game_progress=[GameProgressItem.from_core(r) for r in snapshot.progress],
            unlocked_maps=list(snapshot.unlocked_maps),
        )

    def to_snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            progress=[item.to_core() for item in self.game_progress],
            unlocked_maps=list(self.unlocked_maps),
        )


class SaveProgressResponse(BaseModel):
    """저장 응답"""

    success: bool


class ErrorResponse(BaseModel):
    """에러 응답"""

    success: bool = False
    error: str
    detail: str | None = None
