"""로컬 진행 스냅샷 캐시 (JSON 파일)

원격 저장소 없이도 재시작 후 진행을 이어가기 위한 로컬 사본.
서버와 같은 camelCase 형식을 쓴다. 캐시 손상은 치명적이지 않다 (없는 것으로 취급).
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from src.api.schemas import ProgressPayload
from src.core.progression.models import ProgressSnapshot

logger = logging.getLogger(__name__)


class LocalProgressCache:
    """단일 파일 스냅샷 캐시"""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ProgressSnapshot | None:
        """캐시된 스냅샷. 없거나 손상되면 None."""
        if not self._path.exists():
            return None
        try:
            payload = ProgressPayload.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable progress cache %s - %s", self._path, e)
            return None
        return payload.to_snapshot()

    def save(self, snapshot: ProgressSnapshot) -> None:
        payload = ProgressPayload.from_snapshot(snapshot)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(payload.model_dump_json(by_alias=True), encoding="utf-8")
        tmp.replace(self._path)

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
            logger.info("Cleared progress cache %s", self._path)
