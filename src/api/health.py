"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from src.db.database import get_db
from src.db.models import PlayerProgressModel

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)) -> dict[str, str | int]:
    """Return application and database health status."""
    try:
        db.execute(text("SELECT 1"))
        players = db.scalar(select(func.count()).select_from(PlayerProgressModel))
        return {"status": "ok", "database": "connected", "players": players or 0}
    except Exception:
        return {"status": "error", "database": "disconnected"}
