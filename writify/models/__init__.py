"""Database models."""
from writify.models.user import User
from writify.models.assignment_request import AssignmentRequest
from writify.models.assignment import Assignment
from writify.models.rating import Rating
from writify.models.writer_portfolio import WriterPortfolio

__all__ = [
    "User",
    "AssignmentRequest",
    "Assignment",
    "Rating",
    "WriterPortfolio",
]
