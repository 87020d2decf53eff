"""Response schemas shared by several routers."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from writify.models import AssignmentRequest, User


class UserCard(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    profile_picture: Optional[str] = None
    rating: float
    total_ratings: int
    whatsapp_number: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    profile_picture: Optional[str]
    university_stream: Optional[str]
    whatsapp_number: Optional[str]
    writer_status: Optional[str]
    rating: float
    total_ratings: int
    role: str
    created_at: str


class RequestResponse(BaseModel):
    id: int
    client_id: int
    course_name: str
    course_code: str
    assignment_type: str
    num_pages: int
    deadline: str
    estimated_cost: int
    status: str
    created_at: str


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_card(user: User, with_contact: bool = True) -> UserCard:
    return UserCard(
        id=user.id,
        name=user.name,
        email=user.email,
        profile_picture=user.profile_picture,
        rating=float(user.rating or 0),
        total_ratings=user.total_ratings or 0,
        whatsapp_number=user.whatsapp_number if with_contact else None,
    )


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        profile_picture=user.profile_picture,
        university_stream=user.university_stream,
        whatsapp_number=user.whatsapp_number,
        writer_status=user.writer_status,
        rating=float(user.rating or 0),
        total_ratings=user.total_ratings or 0,
        role=user.role,
        created_at=iso(user.created_at),
    )


def request_response(request: AssignmentRequest) -> RequestResponse:
    return RequestResponse(
        id=request.id,
        client_id=request.client_id,
        course_name=request.course_name,
        course_code=request.course_code,
        assignment_type=request.assignment_type,
        num_pages=request.num_pages,
        deadline=iso(request.deadline),
        estimated_cost=request.estimated_cost,
        status=request.status,
        created_at=iso(request.created_at),
    )
