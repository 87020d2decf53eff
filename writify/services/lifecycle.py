"""Request lifecycle service.

Drives an assignment request through ``OPEN -> ASSIGNED -> COMPLETED`` and
applies the side effects of each transition: the writer goes busy on accept,
the client's contact number is released to the winning writer, and ratings
are aggregated onto the rated user. Completion has two triggers (an explicit
complete by the writer, or a rating) that share one transition.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from writify.core.config import settings
from writify.core.errors import Forbidden, NotFound, PreconditionFailed, StoreUnavailable, ValidationFailed
from writify.models import Assignment, AssignmentRequest, Rating, User
from writify.models.assignment import ASSIGNMENT_COMPLETED, ASSIGNMENT_IN_PROGRESS
from writify.models.user import WRITER_BUSY
from writify.utils.request_sanitizer import RequestSanitizer

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class LifecycleEvent(str, Enum):
    ACCEPT = "accept"
    COMPLETE = "complete"
    RATE = "rate"


# COMPLETE and RATE lead to the same transition; both are no-ops once completed.
TRANSITIONS = {
    (RequestState.OPEN, LifecycleEvent.ACCEPT): RequestState.ASSIGNED,
    (RequestState.ASSIGNED, LifecycleEvent.COMPLETE): RequestState.COMPLETED,
    (RequestState.ASSIGNED, LifecycleEvent.RATE): RequestState.COMPLETED,
    (RequestState.COMPLETED, LifecycleEvent.COMPLETE): RequestState.COMPLETED,
    (RequestState.COMPLETED, LifecycleEvent.RATE): RequestState.COMPLETED,
}


def next_state(state: RequestState, event: LifecycleEvent) -> Optional[RequestState]:
    return TRANSITIONS.get((state, event))


def derive_state(request: AssignmentRequest, assignment: Optional[Assignment]) -> RequestState:
    """Combine a request and its (possibly absent) assignment into one state."""
    if assignment is None:
        return RequestState.OPEN
    if assignment.status == ASSIGNMENT_COMPLETED:
        return RequestState.COMPLETED
    return RequestState.ASSIGNED


def recompute_user_rating(db: Session, user_id: int):
    """Rewrite a user's rating aggregate from the ratings they received.

    This is the only writer of ``users.rating`` and ``users.total_ratings``.
    Pending changes must be flushed before calling it.
    """
    average, count = db.query(
        func.avg(Rating.rating), func.count(Rating.id)
    ).filter(Rating.rated_id == user_id).one()

    if count:
        average = Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    else:
        average = Decimal("0.00")

    db.query(User).filter(User.id == user_id).update(
        {User.rating: average, User.total_ratings: count}, synchronize_session=False
    )
    return average, count


@dataclass
class AcceptResult:
    request: AssignmentRequest
    assignment: Assignment
    client_whatsapp: Optional[str]


@dataclass
class RatingResult:
    rating: Rating
    created: bool
    average_rating: Decimal
    total_ratings: int
    assignment_completed: bool


class RequestLifecycle:
    """Mutating operations on assignment requests.

    Each operation runs in one transaction on the injected session and is
    rolled back entirely on failure.

    Usage:
        lifecycle = RequestLifecycle(db)
        result = lifecycle.accept(request_id, writer)
    """

    def __init__(self, db: Session, cost_increment: Optional[int] = None):
        self.db = db
        self.cost_increment = cost_increment or settings.COST_INCREMENT

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.db.commit()
        except OperationalError as e:
            self.db.rollback()
            logger.error("Store unavailable: %s", e)
            raise StoreUnavailable("Database is unavailable, try again later") from e
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    def create_request(self, client: User, data: Dict[str, Any]) -> AssignmentRequest:
        """Validate, normalize and store a new OPEN request for ``client``."""
        values = RequestSanitizer.sanitize(data, self.cost_increment)

        request = AssignmentRequest(
            client_id=client.id,
            status=RequestState.OPEN.value,
            **values,
        )
        with self._transaction():
            self.db.add(request)

        self.db.refresh(request)
        logger.info(
            "Created assignment request %s for client %s (cost %s)",
            request.id, client.id, request.estimated_cost,
        )
        return request

    # ------------------------------------------------------------------
    # Accept
    # ------------------------------------------------------------------
    def accept(self, request_id: int, writer: User) -> AcceptResult:
        """
        Claim an OPEN request for ``writer``.

        The conditional update on ``status = 'open'`` decides the race: the
        first transaction to commit wins and every other caller gets
        ``PreconditionFailed``.

        Raises:
            ValidationFailed: If the writer owns the request
            PreconditionFailed: If the request is missing or no longer open
        """
        writer_id = writer.id
        owner_id = self.db.query(AssignmentRequest.client_id).filter(
            AssignmentRequest.id == request_id
        ).scalar()
        if owner_id is not None and owner_id == writer_id:
            raise ValidationFailed("You cannot accept your own request")

        assigned = next_state(RequestState.OPEN, LifecycleEvent.ACCEPT)

        with self._transaction():
            updated = self.db.query(AssignmentRequest).filter(
                AssignmentRequest.id == request_id,
                AssignmentRequest.status == RequestState.OPEN.value,
            ).update({AssignmentRequest.status: assigned.value}, synchronize_session=False)

            if updated == 0:
                logger.info("Writer %s lost accept on request %s", writer_id, request_id)
                raise PreconditionFailed("Request not found or already assigned")

            request = self.db.get(AssignmentRequest, request_id, populate_existing=True)
            assignment = Assignment(
                request_id=request.id,
                writer_id=writer_id,
                client_id=request.client_id,
                status=ASSIGNMENT_IN_PROGRESS,
            )
            self.db.add(assignment)

            self.db.query(User).filter(User.id == writer_id).update(
                {User.writer_status: WRITER_BUSY}, synchronize_session=False
            )
            self.db.flush()

        logger.info("Writer %s accepted request %s", writer_id, request_id)

        # contact lookup happens after commit, outside the accept transaction
        client_whatsapp = self.db.query(User.whatsapp_number).filter(
            User.id == request.client_id
        ).scalar()

        return AcceptResult(request=request, assignment=assignment, client_whatsapp=client_whatsapp)

    # ------------------------------------------------------------------
    # Completion (shared by COMPLETE and RATE)
    # ------------------------------------------------------------------
    def _fire(self, request: AssignmentRequest, assignment: Assignment, event: LifecycleEvent) -> bool:
        """Apply ``event`` to an accepted request. Returns True if it changed state."""
        current = derive_state(request, assignment)
        target = next_state(current, event)
        if target is None:
            raise PreconditionFailed(f"Cannot {event.value} a request that is {current.value}")
        if target == current:
            return False

        now = datetime.utcnow()
        assignment.status = ASSIGNMENT_COMPLETED
        assignment.completed_at = now
        request.status = target.value
        logger.info("Assignment %s completed via %s", assignment.id, event.value)
        return True

    def complete(self, assignment_id: int, writer: User) -> Assignment:
        """
        Mark an assignment completed on behalf of its writer.

        Raises:
            NotFound: If the assignment does not exist
            Forbidden: If ``writer`` is not the assignment's writer
        """
        assignment = self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise NotFound("Assignment not found")
        if assignment.writer_id != writer.id:
            raise Forbidden("You are not authorized to complete this assignment")

        with self._transaction():
            self._fire(assignment.request, assignment, LifecycleEvent.COMPLETE)
            self.db.flush()

        self.db.refresh(assignment)
        return assignment

    # ------------------------------------------------------------------
    # Rate
    # ------------------------------------------------------------------
    def rate(
        self,
        rater: User,
        rated_id: int,
        score: int,
        assignment_request_id: int,
        comment: Optional[str] = None,
    ) -> RatingResult:
        """
        Record (or replace) ``rater``'s judgment for a request.

        In the same transaction the rated user's aggregate is recomputed and
        the assignment, if one exists, is completed.

        Raises:
            ValidationFailed: On an out-of-range score or a self-rating
            NotFound: If the request or the rated user does not exist
            Forbidden: If the two users are not the parties of the request
        """
        if score is None or not 1 <= score <= 5:
            raise ValidationFailed("Rating must be between 1 and 5")
        if rated_id == rater.id:
            raise ValidationFailed("You cannot rate yourself")

        request = self.db.get(AssignmentRequest, assignment_request_id)
        if request is None:
            raise NotFound("Assignment request not found")
        if self.db.get(User, rated_id) is None:
            raise NotFound("Rated user not found")

        assignment = request.assignment
        if assignment is not None:
            if {rater.id, rated_id} != {assignment.client_id, assignment.writer_id}:
                raise Forbidden("Only the client and writer of this assignment can rate each other")
        elif request.client_id not in (rater.id, rated_id):
            raise Forbidden("Only the client of this request can take part in its ratings")

        rater_id = rater.id
        with self._transaction():
            rating = self.db.query(Rating).filter(
                Rating.rater_id == rater_id,
                Rating.assignment_request_id == assignment_request_id,
            ).first()

            created = rating is None
            previous_rated_id = None
            if created:
                rating = Rating(
                    rater_id=rater_id,
                    rated_id=rated_id,
                    assignment_request_id=assignment_request_id,
                    rating=score,
                    comment=comment,
                )
                self.db.add(rating)
            else:
                # a rating given before acceptance may have named someone else
                if rating.rated_id != rated_id:
                    previous_rated_id = rating.rated_id
                rating.rated_id = rated_id
                rating.rating = score
                rating.comment = comment
                rating.created_at = datetime.utcnow()
            self.db.flush()

            if previous_rated_id is not None:
                recompute_user_rating(self.db, previous_rated_id)
            average, count = recompute_user_rating(self.db, rated_id)

            completed = False
            if assignment is not None:
                completed = self._fire(request, assignment, LifecycleEvent.RATE)
            else:
                logger.info("No assignment for request %s yet, rating recorded only", assignment_request_id)
            self.db.flush()

        logger.info(
            "%s rating by %s on request %s (average for %s now %s over %s)",
            "New" if created else "Updated", rater_id, assignment_request_id,
            rating.rated_id, average, count,
        )
        return RatingResult(
            rating=rating,
            created=created,
            average_rating=average,
            total_ratings=count,
            assignment_completed=completed,
        )
