"""Input normalization for assignment requests."""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict

from dateutil import parser as date_parser

from writify.core.errors import ValidationFailed


class RequestSanitizer:
    """Validate and normalize the fields of a new assignment request.

    Oversized text is truncated rather than rejected.
    """

    # both must fit the Integer columns they are stored in
    MAX_COST = 10_000_000
    MAX_PAGES = 10_000

    FIELD_LIMITS = {
        "course_name": 255,
        "course_code": 50,
        "assignment_type": 100,
    }
    REQUIRED_FIELDS = (
        "course_name",
        "course_code",
        "assignment_type",
        "num_pages",
        "deadline",
        "estimated_cost",
    )

    @staticmethod
    def normalize_cost(raw: Any, increment: int) -> int:
        """
        Round a cost estimate to the nearest multiple of ``increment``.

        Halves round up, so with an increment of 50: 237 -> 250, 225 -> 250,
        224 -> 200.

        Raises:
            ValidationFailed: If the value is not numeric or above ``MAX_COST``
        """
        try:
            value = Decimal(str(raw).strip())
        except (InvalidOperation, ValueError):
            raise ValidationFailed("Estimated cost must be a number")
        if not value.is_finite():
            raise ValidationFailed("Estimated cost must be a number")
        if value > RequestSanitizer.MAX_COST:
            raise ValidationFailed(f"Estimated cost must be at most {RequestSanitizer.MAX_COST}")
        if value < 0:
            raise ValidationFailed(f"Estimated cost must be at least {increment}")

        steps = (value / Decimal(increment)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(steps) * increment

    @staticmethod
    def truncate(value: Any, limit: int) -> str:
        return str(value).strip()[:limit]

    @staticmethod
    def parse_pages(raw: Any) -> int:
        try:
            pages = int(str(raw).strip())
        except ValueError:
            raise ValidationFailed("Number of pages must be a number")
        if pages < 1:
            raise ValidationFailed("Number of pages must be at least 1")
        if pages > RequestSanitizer.MAX_PAGES:
            raise ValidationFailed(f"Number of pages must be at most {RequestSanitizer.MAX_PAGES}")
        return pages

    @staticmethod
    def parse_deadline(raw: Any) -> datetime:
        """Parse an ISO-8601 deadline into a naive UTC datetime."""
        if isinstance(raw, datetime):
            parsed = raw
        else:
            try:
                parsed = date_parser.isoparse(str(raw).strip())
            except (ValueError, OverflowError):
                raise ValidationFailed("Deadline must be a valid ISO-8601 date")
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    @classmethod
    def sanitize(cls, data: Dict[str, Any], increment: int) -> Dict[str, Any]:
        """
        Validate a raw request payload and return the values to persist.

        Args:
            data: Raw field values as submitted by the client
            increment: Cost rounding step

        Returns:
            Dictionary of normalized column values

        Raises:
            ValidationFailed: On missing, non-numeric or out-of-range fields
        """
        missing = [
            name for name in cls.REQUIRED_FIELDS
            if data.get(name) is None or str(data.get(name)).strip() == ""
        ]
        if missing:
            raise ValidationFailed(f"All fields are required (missing: {', '.join(missing)})")

        num_pages = cls.parse_pages(data["num_pages"])
        estimated_cost = cls.normalize_cost(data["estimated_cost"], increment)
        if estimated_cost <= 0:
            raise ValidationFailed(f"Estimated cost must be at least {increment}")

        sanitized = {
            name: cls.truncate(data[name], limit)
            for name, limit in cls.FIELD_LIMITS.items()
        }
        sanitized.update(
            num_pages=num_pages,
            deadline=cls.parse_deadline(data["deadline"]),
            estimated_cost=estimated_cost,
        )
        return sanitized


def is_university_email(email: str, domain: str) -> bool:
    return bool(email) and email.lower().endswith(domain.lower())
