"""Profile routes: own profile, writer settings and portfolio."""
import logging
from typing import Optional

from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from writify.core.config import settings
from writify.core.errors import ValidationFailed
from writify.core.security import get_current_user
from writify.db.sessions import get_db
from writify.models import User, WriterPortfolio
from writify.models.user import ROLE_STUDENT, WRITER_STATUSES
from writify.routes._common import UserResponse, iso, user_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Profile"])


class PortfolioBody(BaseModel):
    sample_work_image: Optional[str] = None
    description: Optional[str] = None


class PortfolioResponse(PortfolioBody):
    id: int
    writer_id: int


class ProfileResponse(UserResponse):
    portfolio: Optional[PortfolioBody] = None
    data_expires_at: Optional[str] = None


class WriterProfileRequest(BaseModel):
    university_stream: Optional[str] = None
    whatsapp_number: Optional[str] = None
    writer_status: Optional[str] = None


class WhatsappRequest(BaseModel):
    whatsapp_number: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


def data_expires_at(user: User) -> Optional[str]:
    """When the retention sweep will remove this account, if ever."""
    if user.role != ROLE_STUDENT or user.created_at is None:
        return None
    return iso(user.created_at + relativedelta(months=settings.RETENTION_MONTHS))


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    """Current user with portfolio and data-expiry date."""
    portfolio = current_user.portfolio
    return ProfileResponse(
        **user_response(current_user).model_dump(),
        portfolio=PortfolioBody(
            sample_work_image=portfolio.sample_work_image,
            description=portfolio.description,
        ) if portfolio else None,
        data_expires_at=data_expires_at(current_user),
    )


@router.put("/profile/writer", response_model=UserResponse)
def update_writer_profile(
    request: WriterProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update stream, WhatsApp number and availability."""
    if request.writer_status is not None and request.writer_status not in WRITER_STATUSES:
        raise ValidationFailed("Invalid writer status")

    current_user.university_stream = request.university_stream
    current_user.whatsapp_number = request.whatsapp_number
    if request.writer_status is not None:
        current_user.writer_status = request.writer_status
    db.commit()
    db.refresh(current_user)

    logger.info("Updated writer profile for user %s", current_user.id)
    return user_response(current_user)


@router.post("/profile/portfolio", response_model=PortfolioResponse)
def upsert_portfolio(
    request: PortfolioBody,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create or replace the current user's portfolio."""
    portfolio = db.query(WriterPortfolio).filter(
        WriterPortfolio.writer_id == current_user.id
    ).first()
    if portfolio is None:
        portfolio = WriterPortfolio(writer_id=current_user.id)
        db.add(portfolio)

    portfolio.sample_work_image = request.sample_work_image
    portfolio.description = request.description
    db.commit()
    db.refresh(portfolio)

    return PortfolioResponse(
        id=portfolio.id,
        writer_id=portfolio.writer_id,
        sample_work_image=portfolio.sample_work_image,
        description=portfolio.description,
    )


@router.post("/update-whatsapp", response_model=MessageResponse)
def update_whatsapp(
    request: WhatsappRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not request.whatsapp_number or not request.whatsapp_number.strip():
        raise ValidationFailed("WhatsApp number is required")

    current_user.whatsapp_number = request.whatsapp_number.strip()
    db.commit()
    return MessageResponse(message="WhatsApp number updated successfully")
