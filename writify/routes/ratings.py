"""Rating routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from writify.db.sessions import get_db
from writify.models import Rating, User
from writify.core.security import get_current_user
from writify.routes._common import iso
from writify.services.lifecycle import RequestLifecycle


router = APIRouter(prefix="/api", tags=["Ratings"])


class SubmitRatingRequest(BaseModel):
    rated_id: int
    rating: int = Field(ge=1, le=5)
    assignment_request_id: int
    comment: Optional[str] = None


class SubmitRatingResponse(BaseModel):
    message: str
    rating_id: int
    created: bool
    rated_id: int
    average_rating: float
    total_ratings: int
    assignment_completed: bool


class RatingItem(BaseModel):
    id: int
    rater_id: int
    rater_name: Optional[str]
    assignment_request_id: int
    rating: int
    comment: Optional[str]
    created_at: Optional[str]


class MyRatingsResponse(BaseModel):
    ratings: List[RatingItem]
    average_rating: float
    total_ratings: int


@router.post("/ratings", response_model=SubmitRatingResponse, status_code=status.HTTP_201_CREATED)
def submit_rating(
    request: SubmitRatingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Rate the other party of an assignment request.

    Submitting again for the same request replaces the earlier rating.
    A rating also completes the request's assignment.
    """
    result = RequestLifecycle(db).rate(
        rater=current_user,
        rated_id=request.rated_id,
        score=request.rating,
        assignment_request_id=request.assignment_request_id,
        comment=request.comment,
    )
    return SubmitRatingResponse(
        message="Rating submitted successfully",
        rating_id=result.rating.id,
        created=result.created,
        rated_id=result.rating.rated_id,
        average_rating=float(result.average_rating),
        total_ratings=result.total_ratings,
        assignment_completed=result.assignment_completed,
    )


@router.get("/my-ratings", response_model=MyRatingsResponse)
def my_ratings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ratings the current user has received, with their aggregate."""
    ratings = db.query(Rating).filter(
        Rating.rated_id == current_user.id
    ).order_by(Rating.created_at.desc(), Rating.id.desc()).all()

    return MyRatingsResponse(
        ratings=[
            RatingItem(
                id=r.id,
                rater_id=r.rater_id,
                rater_name=r.rater.name if r.rater else None,
                assignment_request_id=r.assignment_request_id,
                rating=r.rating,
                comment=r.comment,
                created_at=iso(r.created_at),
            )
            for r in ratings
        ],
        average_rating=float(current_user.rating or 0),
        total_ratings=current_user.total_ratings or 0,
    )
