"""Assignment request routes."""
from datetime import datetime
from typing import List, Optional, Union
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from writify.db.sessions import get_db
from writify.models import AssignmentRequest, User
from writify.core.security import get_current_user
from writify.routes._common import RequestResponse, UserCard, iso, request_response, user_card
from writify.services.lifecycle import RequestLifecycle, RequestState


router = APIRouter(prefix="/api/assignment-requests", tags=["Assignment Requests"])


# Request/Response schemas
class CreateRequestBody(BaseModel):
    # loosely typed on purpose: the sanitizer reports readable errors
    course_name: Optional[str] = None
    course_code: Optional[str] = None
    assignment_type: Optional[str] = None
    num_pages: Optional[Union[int, str]] = None
    deadline: Optional[Union[datetime, str]] = None
    estimated_cost: Optional[Union[float, str]] = None


class OpenRequestResponse(BaseModel):
    id: int
    client: UserCard
    course_name: str
    course_code: str
    assignment_type: str
    num_pages: int
    deadline: str
    estimated_cost: int
    status: str
    created_at: str


class AcceptResponse(RequestResponse):
    assignment_id: int
    client_whatsapp: Optional[str]


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
def create_request(
    body: CreateRequestBody,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Post a new assignment request.

    - Text fields are truncated to their column lengths
    - The cost estimate is rounded to the nearest multiple of 50
    """
    request = RequestLifecycle(db).create_request(current_user, body.model_dump())
    return request_response(request)


@router.get("", response_model=List[OpenRequestResponse])
def list_open_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List open requests, newest first, with a summary of each client."""
    rows = db.query(AssignmentRequest).filter(
        AssignmentRequest.status == RequestState.OPEN.value
    ).order_by(AssignmentRequest.created_at.desc(), AssignmentRequest.id.desc()).all()

    return [
        OpenRequestResponse(
            id=r.id,
            client=user_card(r.client, with_contact=False),
            course_name=r.course_name,
            course_code=r.course_code,
            assignment_type=r.assignment_type,
            num_pages=r.num_pages,
            deadline=iso(r.deadline),
            estimated_cost=r.estimated_cost,
            status=r.status,
            created_at=iso(r.created_at),
        )
        for r in rows
    ]


@router.post("/{request_id}/accept", response_model=AcceptResponse)
def accept_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Accept an open request as the current user.

    Returns the request and the client's WhatsApp number. Only the first
    writer to accept wins; later callers get 404.
    """
    result = RequestLifecycle(db).accept(request_id, current_user)
    base = request_response(result.request)
    return AcceptResponse(
        **base.model_dump(),
        assignment_id=result.assignment.id,
        client_whatsapp=result.client_whatsapp,
    )
