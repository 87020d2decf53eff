"""Assignment routes: the user's assignments and writer-side completion."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from writify.db.sessions import get_db
from writify.models import Assignment, AssignmentRequest, Rating, User
from writify.models.user import ROLE_STUDENT
from writify.core.errors import ValidationFailed
from writify.core.security import get_current_user
from writify.routes._common import UserCard, iso, user_card
from writify.services.lifecycle import RequestLifecycle


router = APIRouter(prefix="/api", tags=["Assignments"])

VIEWS = ("client", "writer")


class AssignmentItem(BaseModel):
    id: int
    request_id: int
    assignment_id: Optional[int]
    writer: Optional[UserCard]
    client: UserCard
    status: str
    created_at: Optional[str]
    completed_at: Optional[str]
    course_name: str
    course_code: str
    assignment_type: str
    num_pages: int
    deadline: str
    estimated_cost: int
    has_rated_writer: bool
    has_rated_client: bool


class MyAssignmentsResponse(BaseModel):
    role: str
    assignments: List[AssignmentItem]


class AssignmentResponse(BaseModel):
    id: int
    request_id: int
    writer_id: int
    client_id: int
    status: str
    created_at: Optional[str]
    completed_at: Optional[str]


def _item(request: AssignmentRequest, assignment: Optional[Assignment], rated: dict, view: str) -> AssignmentItem:
    writer = assignment.writer if assignment else None
    rated_party = rated.get(request.id)
    return AssignmentItem(
        id=request.id,
        request_id=request.id,
        assignment_id=assignment.id if assignment else None,
        writer=user_card(writer) if writer else None,
        client=user_card(request.client),
        status=assignment.status if assignment else "pending",
        created_at=iso(assignment.created_at) if assignment else None,
        completed_at=iso(assignment.completed_at) if assignment else None,
        course_name=request.course_name,
        course_code=request.course_code,
        assignment_type=request.assignment_type,
        num_pages=request.num_pages,
        deadline=iso(request.deadline),
        estimated_cost=request.estimated_cost,
        has_rated_writer=view == "client" and writer is not None and rated_party == writer.id,
        has_rated_client=view == "writer" and rated_party == request.client_id,
    )


@router.get("/my-assignments", response_model=MyAssignmentsResponse)
def my_assignments(
    view: Optional[str] = Query(default=None, description="client or writer"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the current user's assignments.

    Students see the requests they posted (``client`` view); writers see the
    assignments they accepted. ``view`` overrides the default.
    """
    if view is None:
        view = "client" if current_user.role == ROLE_STUDENT else "writer"
    if view not in VIEWS:
        raise ValidationFailed("view must be 'client' or 'writer'")

    rated = {
        r.assignment_request_id: r.rated_id
        for r in db.query(Rating.assignment_request_id, Rating.rated_id).filter(
            Rating.rater_id == current_user.id
        ).all()
    }

    if view == "client":
        requests = db.query(AssignmentRequest).filter(
            AssignmentRequest.client_id == current_user.id
        ).order_by(AssignmentRequest.created_at.desc(), AssignmentRequest.id.desc()).all()
        items = [_item(r, r.assignment, rated, view) for r in requests]
    else:
        assignments = db.query(Assignment).filter(
            Assignment.writer_id == current_user.id
        ).order_by(Assignment.created_at.desc(), Assignment.id.desc()).all()
        items = [_item(a.request, a, rated, view) for a in assignments]

    return MyAssignmentsResponse(role=view, assignments=items)


@router.put("/assignments/{assignment_id}/complete", response_model=AssignmentResponse)
def complete_assignment(
    assignment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark an assignment completed. Only its writer may do this."""
    assignment = RequestLifecycle(db).complete(assignment_id, current_user)
    return AssignmentResponse(
        id=assignment.id,
        request_id=assignment.request_id,
        writer_id=assignment.writer_id,
        client_id=assignment.client_id,
        status=assignment.status,
        created_at=iso(assignment.created_at),
        completed_at=iso(assignment.completed_at),
    )
