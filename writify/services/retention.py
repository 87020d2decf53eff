"""Data retention sweep.

Purges student accounts older than the retention window together with every
row that references them. There are no cascading deletes in the schema, so
dependent rows are removed first, in a fixed order, inside one transaction:

    1. ratings given or received (and ratings on requests being removed)
    2. writer portfolios
    3. assignments where the user is writer or client
    4. requests owned by the user, and requests whose writer is being removed
    5. the users

Any failure rolls the whole sweep back; the next scheduled run starts over.
Accounts promoted to the writer role are never selected.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging
import threading

from dateutil.relativedelta import relativedelta
from sqlalchemy import or_, text
from sqlalchemy.orm import Session

from writify.core.config import settings
from writify.core.errors import SweepFailed
from writify.models import Assignment, AssignmentRequest, Rating, User, WriterPortfolio
from writify.models.user import ROLE_STUDENT
from writify.services.lifecycle import recompute_user_rating

logger = logging.getLogger(__name__)

# pg_try_advisory_xact_lock key shared by every process running the sweep
SWEEP_LOCK_KEY = 7_310_426

_sweep_lock = threading.Lock()


@dataclass
class SweepResult:
    cutoff: datetime
    removed_user_ids: List[int] = field(default_factory=list)
    removed_emails: List[str] = field(default_factory=list)
    deleted: Dict[str, int] = field(default_factory=dict)
    skipped: bool = False

    def to_dict(self) -> dict:
        return {
            "cutoff": self.cutoff.isoformat(),
            "removed_user_ids": self.removed_user_ids,
            "removed_emails": self.removed_emails,
            "deleted": self.deleted,
            "skipped": self.skipped,
        }


def retention_cutoff(now: datetime, months: int) -> datetime:
    return now - relativedelta(months=months)


class RetentionSweep:
    """Run one retention sweep per call to :meth:`run`.

    Usage:
        sweep = RetentionSweep(SessionLocal)
        result = sweep.run()
    """

    def __init__(self, session_factory: Callable[[], Session], retention_months: Optional[int] = None):
        self.session_factory = session_factory
        self.retention_months = retention_months or settings.RETENTION_MONTHS

    def run(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Execute a sweep against the current time (or ``now``).

        Returns:
            SweepResult; ``skipped`` is set when another sweep holds the guard

        Raises:
            SweepFailed: If anything went wrong; nothing was deleted
        """
        cutoff = retention_cutoff(now or datetime.utcnow(), self.retention_months)

        if not _sweep_lock.acquire(blocking=False):
            logger.warning("Retention sweep already running in this process, skipping")
            return SweepResult(cutoff=cutoff, skipped=True)

        try:
            return self._run_locked(cutoff)
        finally:
            _sweep_lock.release()

    def _run_locked(self, cutoff: datetime) -> SweepResult:
        logger.info("Running retention sweep (cutoff %s)", cutoff.isoformat())
        db = None
        try:
            db = self.session_factory()
            if not self._acquire_store_lock(db):
                db.rollback()
                logger.warning("Retention sweep already running elsewhere, skipping")
                return SweepResult(cutoff=cutoff, skipped=True)

            result = self._sweep(db, cutoff)
            db.commit()
        except Exception as e:
            if db is not None:
                db.rollback()
            logger.exception("Retention sweep failed and was rolled back")
            raise SweepFailed(f"Retention sweep failed: {e}") from e
        finally:
            if db is not None:
                db.close()

        logger.info(
            "Retention sweep completed: %d users removed %s",
            len(result.removed_user_ids), result.deleted,
        )
        if result.removed_emails:
            logger.info("Removed accounts: %s", result.removed_emails)
        return result

    @staticmethod
    def _acquire_store_lock(db: Session) -> bool:
        if db.get_bind().dialect.name != "postgresql":
            return True
        return bool(db.execute(
            text("SELECT pg_try_advisory_xact_lock(:key)"), {"key": SWEEP_LOCK_KEY}
        ).scalar())

    @staticmethod
    def _sweep(db: Session, cutoff: datetime) -> SweepResult:
        users = db.query(User.id, User.email).filter(
            User.created_at < cutoff,
            User.role == ROLE_STUDENT,
        ).all()

        result = SweepResult(
            cutoff=cutoff,
            removed_user_ids=[u.id for u in users],
            removed_emails=[u.email for u in users],
        )
        logger.info("Found %d users to delete", len(users))
        if not users:
            return result

        user_ids = result.removed_user_ids

        # captured before step 3 removes the assignments that identify them
        orphaned_request_ids = [
            row.request_id for row in
            db.query(Assignment.request_id).filter(Assignment.writer_id.in_(user_ids)).all()
        ]
        request_filter = or_(
            AssignmentRequest.client_id.in_(user_ids),
            AssignmentRequest.id.in_(orphaned_request_ids),
        )
        request_ids = [row.id for row in db.query(AssignmentRequest.id).filter(request_filter).all()]

        rating_filter = or_(
            Rating.rater_id.in_(user_ids),
            Rating.rated_id.in_(user_ids),
            Rating.assignment_request_id.in_(request_ids),
        )
        surviving_rated_ids = {
            row.rated_id for row in
            db.query(Rating.rated_id).filter(rating_filter).distinct().all()
        } - set(user_ids)

        deleted = result.deleted
        deleted["ratings"] = db.query(Rating).filter(rating_filter).delete(synchronize_session=False)
        for rated_id in sorted(surviving_rated_ids):
            recompute_user_rating(db, rated_id)

        deleted["writer_portfolios"] = db.query(WriterPortfolio).filter(
            WriterPortfolio.writer_id.in_(user_ids)
        ).delete(synchronize_session=False)

        deleted["assignments"] = db.query(Assignment).filter(or_(
            Assignment.writer_id.in_(user_ids),
            Assignment.client_id.in_(user_ids),
            Assignment.request_id.in_(request_ids),
        )).delete(synchronize_session=False)

        deleted["assignment_requests"] = db.query(AssignmentRequest).filter(
            AssignmentRequest.id.in_(request_ids)
        ).delete(synchronize_session=False)

        deleted["users"] = db.query(User).filter(
            User.id.in_(user_ids)
        ).delete(synchronize_session=False)

        return result
