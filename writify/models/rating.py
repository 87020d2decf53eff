"""Rating model."""
from datetime import datetime
from sqlalchemy import Column, DateTime, Integer, Text, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from writify.db.base import Base


class Rating(Base):
    """One mutable judgment per (rater, assignment request)."""

    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("rater_id", "assignment_request_id", name="uq_ratings_rater_request"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
    )

    id = Column(Integer, primary_key=True)
    rater_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rated_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assignment_request_id = Column(Integer, ForeignKey("assignment_requests.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    rater = relationship("User", foreign_keys=[rater_id])
    rated = relationship("User", foreign_keys=[rated_id])
