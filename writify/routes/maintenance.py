"""Maintenance routes: manual retention sweep."""
import secrets
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel

from writify.core.config import settings
from writify.db.sessions import SessionLocal
from writify.services.retention import RetentionSweep


router = APIRouter(prefix="/api/maintenance", tags=["Maintenance"])


class SweepResponse(BaseModel):
    cutoff: str
    removed_user_ids: List[int]
    removed_emails: List[str]
    deleted: Dict[str, int]
    skipped: bool


def get_sweep() -> RetentionSweep:
    return RetentionSweep(SessionLocal)


@router.post("/retention-sweep", response_model=SweepResponse)
def run_retention_sweep(
    x_maintenance_token: Optional[str] = Header(default=None),
    sweep: RetentionSweep = Depends(get_sweep),
):
    """
    Run the retention sweep now.

    Requires the ``X-Maintenance-Token`` header; disabled when no token is
    configured. Answers 409 if a sweep is already running.
    """
    expected = settings.MAINTENANCE_TOKEN
    if not expected or not x_maintenance_token or not secrets.compare_digest(x_maintenance_token, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Maintenance token required"
        )

    result = sweep.run()
    if result.skipped:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A retention sweep is already running"
        )
    return SweepResponse(**result.to_dict())
