"""Assignment request model."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship
from writify.db.base import Base


REQUEST_OPEN = "open"
REQUEST_ASSIGNED = "assigned"
REQUEST_COMPLETED = "completed"


class AssignmentRequest(Base):
    """A job posted by a client and waiting for a writer."""

    __tablename__ = "assignment_requests"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_name = Column(String(255), nullable=False)
    course_code = Column(String(50), nullable=False)
    assignment_type = Column(String(100), nullable=False)
    num_pages = Column(Integer, nullable=False)
    deadline = Column(DateTime, nullable=False)
    estimated_cost = Column(Integer, nullable=False)  # multiple of COST_INCREMENT
    status = Column(String(20), nullable=False, default=REQUEST_OPEN, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    client = relationship("User", back_populates="requests", foreign_keys=[client_id])
    assignment = relationship("Assignment", back_populates="request", uselist=False)
