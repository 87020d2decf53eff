"""User model."""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship
from writify.db.base import Base


ROLE_STUDENT = "student"
ROLE_WRITER = "writer"

WRITER_INACTIVE = "inactive"
WRITER_ACTIVE = "active"
WRITER_BUSY = "busy"
WRITER_STATUSES = (WRITER_ACTIVE, WRITER_BUSY, WRITER_INACTIVE)


class User(Base):
    """A student account; clients and writers are the same entity."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    google_id = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    profile_picture = Column(String(500))
    role = Column(String(50), nullable=False, default=ROLE_STUDENT)
    writer_status = Column(String(20), default=WRITER_INACTIVE)
    university_stream = Column(String(255))
    whatsapp_number = Column(String(30))
    # written only by the rating recomputation
    rating = Column(Numeric(3, 2), nullable=False, default=Decimal("0.00"))
    total_ratings = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    requests = relationship("AssignmentRequest", back_populates="client", foreign_keys="AssignmentRequest.client_id")
    portfolio = relationship("WriterPortfolio", back_populates="writer", uselist=False)
