"""Progress API endpoints (authoritative remote store)."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from src.api.schemas import ErrorResponse, ProgressPayload, SaveProgressResponse
from src.core.logging import get_logger
from src.db.database import get_db
from src.services.progress_repository import ProgressRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["progress"])


def get_identity(authorization: Optional[str] = Header(default=None)) -> str:
    """Authorization 헤더의 Bearer 토큰을 계정 식별자로 사용 (의존성 주입).

    토큰 발급/검증은 인증 서비스 담당. 여기서는 형식만 확인한다.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return token.strip()


def get_repository(db: Session = Depends(get_db)) -> ProgressRepository:
    """ProgressRepository 인스턴스 반환 (의존성 주입)"""
    return ProgressRepository(db)


@router.get(
    "/progress",
    response_model=ProgressPayload,
    responses={401: {"model": ErrorResponse}},
)
def load_progress(
    identity: str = Depends(get_identity),
    repo: ProgressRepository = Depends(get_repository),
) -> ProgressPayload:
    """
    진행 스냅샷 로드

    신규 플레이어는 빈 목록을 반환합니다 (에러 아님).
    """
    snapshot = repo.get_snapshot(identity)
    if snapshot is None:
        logger.info("No stored progress for %s", identity)
        return ProgressPayload()
    return ProgressPayload.from_snapshot(snapshot)


@router.post(
    "/progress",
    response_model=SaveProgressResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def save_progress(
    payload: ProgressPayload,
    identity: str = Depends(get_identity),
    repo: ProgressRepository = Depends(get_repository),
) -> SaveProgressResponse:
    """
    진행 스냅샷 저장

    전체 스냅샷을 교체합니다. 같은 스냅샷 재전송은 아무 변화도 없습니다.
    """
    try:
        repo.save_snapshot(identity, payload.to_snapshot())
    except Exception as e:
        logger.error("Failed to save progress for %s: %s", identity, e)
        raise HTTPException(status_code=500, detail=str(e))
    return SaveProgressResponse(success=True)
