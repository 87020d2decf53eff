from datetime import datetime

import pytest

from writify.core.errors import ValidationFailed
from writify.utils.request_sanitizer import RequestSanitizer, is_university_email


def _payload(**overrides) -> dict:
    data = {
        "course_name": "Data Structures",
        "course_code": "CS201",
        "assignment_type": "Essay",
        "num_pages": 5,
        "deadline": "2026-10-20T12:00:00Z",
        "estimated_cost": 237,
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize("raw, expected", [
    (237, 250),
    (225, 250),
    (224, 200),
    (275, 300),
    ("237.4", 250),
    (50, 50),
    (1000, 1000),
])
def test_normalize_cost_rounds_half_up_to_increment(raw, expected):
    assert RequestSanitizer.normalize_cost(raw, 50) == expected


@pytest.mark.parametrize("raw", ["abc", "", "12a", "nan"])
def test_normalize_cost_rejects_non_numeric(raw):
    with pytest.raises(ValidationFailed, match="must be a number"):
        RequestSanitizer.normalize_cost(raw, 50)


def test_sanitize_normalizes_and_parses():
    values = RequestSanitizer.sanitize(_payload(num_pages="7"), 50)

    assert values["estimated_cost"] == 250
    assert values["num_pages"] == 7
    assert values["deadline"] == datetime(2026, 10, 20, 12, 0, 0)
    assert values["deadline"].tzinfo is None


def test_sanitize_truncates_oversized_text():
    values = RequestSanitizer.sanitize(
        _payload(course_name="n" * 300, course_code="c" * 80, assignment_type="t" * 150),
        50,
    )

    assert len(values["course_name"]) == 255
    assert len(values["course_code"]) == 50
    assert len(values["assignment_type"]) == 100


def test_sanitize_reports_missing_fields():
    with pytest.raises(ValidationFailed) as exc:
        RequestSanitizer.sanitize(_payload(course_code="", deadline=None), 50)

    assert "course_code" in exc.value.message
    assert "deadline" in exc.value.message


@pytest.mark.parametrize("cost", [20, 0, -100])
def test_sanitize_rejects_costs_that_round_to_nothing(cost):
    with pytest.raises(ValidationFailed, match="at least 50"):
        RequestSanitizer.sanitize(_payload(estimated_cost=cost), 50)


def test_sanitize_rejects_bad_pages_and_deadline():
    with pytest.raises(ValidationFailed, match="pages"):
        RequestSanitizer.sanitize(_payload(num_pages="five"), 50)
    with pytest.raises(ValidationFailed, match="at least 1"):
        RequestSanitizer.sanitize(_payload(num_pages=0), 50)
    with pytest.raises(ValidationFailed, match="Deadline"):
        RequestSanitizer.sanitize(_payload(deadline="next tuesday"), 50)


def test_university_email_check():
    assert is_university_email("someone@student.iul.ac.in", "@student.iul.ac.in")
    assert is_university_email("Someone@Student.IUL.ac.in", "@student.iul.ac.in")
    assert not is_university_email("someone@gmail.com", "@student.iul.ac.in")
    assert not is_university_email("", "@student.iul.ac.in")


@pytest.mark.parametrize("raw", ["1e30", 10 ** 12, "-1e30"])
def test_normalize_cost_rejects_out_of_range(raw):
    with pytest.raises(ValidationFailed, match="Estimated cost must be at"):
        RequestSanitizer.normalize_cost(raw, 50)


def test_sanitize_rejects_absurd_page_count():
    with pytest.raises(ValidationFailed, match="at most"):
        RequestSanitizer.sanitize(_payload(num_pages=10 ** 9), 50)
