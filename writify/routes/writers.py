"""Writer directory routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from writify.db.sessions import get_db
from writify.models import User
from writify.models.user import WRITER_STATUSES
from writify.core.errors import NotFound, ValidationFailed
from writify.core.security import get_current_user


router = APIRouter(prefix="/api/writers", tags=["Writers"])


class WriterResponse(BaseModel):
    id: int
    name: str
    profile_picture: Optional[str]
    university_stream: Optional[str]
    writer_status: Optional[str]
    rating: float
    total_ratings: int
    sample_work_image: Optional[str]
    portfolio_description: Optional[str]


def _writer(user: User) -> WriterResponse:
    portfolio = user.portfolio
    return WriterResponse(
        id=user.id,
        name=user.name,
        profile_picture=user.profile_picture,
        university_stream=user.university_stream,
        writer_status=user.writer_status,
        rating=float(user.rating or 0),
        total_ratings=user.total_ratings or 0,
        sample_work_image=portfolio.sample_work_image if portfolio else None,
        portfolio_description=portfolio.description if portfolio else None,
    )


@router.get("", response_model=List[WriterResponse])
def list_writers(
    writer_status: Optional[str] = Query(default=None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List writers by rating, optionally filtered by availability."""
    query = db.query(User).filter(User.writer_status.isnot(None))
    if writer_status is not None:
        if writer_status not in WRITER_STATUSES:
            raise ValidationFailed("Invalid writer status")
        query = query.filter(User.writer_status == writer_status)

    writers = query.order_by(User.rating.desc(), User.total_ratings.desc(), User.id).all()
    return [_writer(w) for w in writers]


@router.get("/{writer_id}", response_model=WriterResponse)
def get_writer(
    writer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    writer = db.query(User).filter(User.id == writer_id).first()
    if not writer:
        raise NotFound("Writer not found")
    return _writer(writer)
