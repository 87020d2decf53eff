"""Writer portfolio model."""
from sqlalchemy import Column, String, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from writify.db.base import Base


class WriterPortfolio(Base):
    __tablename__ = "writer_portfolios"

    id = Column(Integer, primary_key=True)
    writer_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    sample_work_image = Column(String(1024))
    description = Column(Text)

    writer = relationship("User", back_populates="portfolio")
