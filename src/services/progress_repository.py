"""진행 스냅샷 저장소 Service - 서버측 Core↔DB 연결

식별자(player_id)당 스냅샷 1개. 저장은 전체 교체(마지막 저장 우선)이며
같은 스냅샷을 다시 보내도 결과가 같다.
"""

import logging

from sqlalchemy.orm import Session

from src.core.progression.enums import DialogStep
from src.core.progression.models import NPCProgress, ProgressSnapshot
from src.db.models import PlayerProgressModel

logger = logging.getLogger(__name__)


class ProgressRepository:
    """PlayerProgressModel CRUD"""

    def __init__(self, db: Session):
        self._db = db

    def get_snapshot(self, player_id: str) -> ProgressSnapshot | None:
        """저장된 스냅샷. 신규 플레이어면 None."""
        orm = self._db.get(PlayerProgressModel, player_id)
        if orm is None:
            return None
        return self._orm_to_snapshot(orm)

    def save_snapshot(self, player_id: str, snapshot: ProgressSnapshot) -> int:
        """스냅샷 전체 교체. 반환: 저장 후 revision."""
        orm = self._db.get(PlayerProgressModel, player_id)
        progress_json = [self._record_to_dict(r) for r in snapshot.progress]
        unlocked = sorted(set(snapshot.unlocked_maps))

        if orm is None:
            orm = PlayerProgressModel(
                player_id=player_id,
                game_progress=progress_json,
                unlocked_maps=unlocked,
                revision=1,
            )
            self._db.add(orm)
        elif orm.game_progress == progress_json and orm.unlocked_maps == unlocked:
            logger.debug("Progress for %s unchanged (rev %d)", player_id, orm.revision)
            return orm.revision
        else:
            orm.game_progress = progress_json
            orm.unlocked_maps = unlocked
            orm.revision += 1

        self._db.commit()
        logger.info(
            "Saved progress for %s: %d records, %d maps (rev %d)",
            player_id,
            len(progress_json),
            len(unlocked),
            orm.revision,
        )
        return orm.revision

    def delete_snapshot(self, player_id: str) -> bool:
        orm = self._db.get(PlayerProgressModel, player_id)
        if orm is None:
            return False
        self._db.delete(orm)
        self._db.commit()
        return True

    # === 변환 ===

    @staticmethod
    def _record_to_dict(record: NPCProgress) -> dict:
        return {
            "mapId": record.map_id,
            "npcId": record.npc_id,
            "isUnlocked": record.is_unlocked,
            "isCompleted": record.is_completed,
            "dialogStep": DialogStep(record.dialog_step).value,
            "factIndex": record.fact_index,
        }

    @staticmethod
    def _orm_to_snapshot(orm: PlayerProgressModel) -> ProgressSnapshot:
        progress = [
            NPCProgress(
                map_id=item["mapId"],
                npc_id=item["npcId"],
                is_unlocked=bool(item.get("isUnlocked", False)),
                is_completed=bool(item.get("isCompleted", False)),
                dialog_step=DialogStep(item.get("dialogStep", DialogStep.QUESTION.value)),
                fact_index=int(item.get("factIndex", 0)),
            )
            for item in orm.game_progress
        ]
        return ProgressSnapshot(progress=progress, unlocked_maps=list(orm.unlocked_maps))
