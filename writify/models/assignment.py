"""Assignment model."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship
from writify.db.base import Base


ASSIGNMENT_IN_PROGRESS = "in_progress"
ASSIGNMENT_COMPLETED = "completed"


class Assignment(Base):
    """A writer paired with an accepted request (1:1 with the request)."""

    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    request_id = Column(Integer, ForeignKey("assignment_requests.id"), nullable=False, unique=True)
    writer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ASSIGNMENT_IN_PROGRESS)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)

    # Relationships
    request = relationship("AssignmentRequest", back_populates="assignment")
    writer = relationship("User", foreign_keys=[writer_id])
    client = relationship("User", foreign_keys=[client_id])
