from __future__ import annotations

from datetime import date, datetime

import pytest

from assess_core.deadline import (
    banner_text,
    classify,
    days_since,
    reminder_text,
    severity,
    submission_line,
)
from assess_core.types import DeadlineConfig

XMAS = DeadlineConfig(day=25, month=12, label="End of term")


def test_no_deadline_means_no_banner():
    assert classify(None, datetime(2025, 1, 1)) is None


def test_classify_examples():
    up = classify(XMAS, datetime(2025, 12, 20, 23, 59))
    assert (up.status, up.days_left) == ("upcoming", 5)
    today = classify(XMAS, datetime(2025, 12, 25, 8, 0))
    assert today.status == "today"
    late = classify(XMAS, datetime(2025, 12, 27))
    assert (late.status, late.overdue_days) == ("overdue", 2)


def test_classify_is_pure():
    now = datetime(2025, 6, 1, 12, 0)
    assert classify(XMAS, now) == classify(XMAS, now)


def test_time_of_day_is_ignored():
    assert classify(XMAS, datetime(2025, 12, 24, 0, 0)) == classify(XMAS, datetime(2025, 12, 24, 23, 59))


def test_unpinned_year_does_not_roll_over():
    info = classify(DeadlineConfig(day=10, month=2), date(2025, 11, 1))
    assert info.status == "overdue"
    assert info.overdue_days == 264


def test_pinned_year_is_used():
    info = classify(DeadlineConfig(day=10, month=2, year=2026), date(2025, 11, 1))
    assert (info.status, info.days_left) == ("upcoming", 101)


def test_day_overflow_rolls_into_next_month():
    info = classify(DeadlineConfig(day=29, month=2), date(2025, 3, 1))
    assert info.status == "today"


@pytest.mark.parametrize(
    "now, expected",
    [
        (date(2025, 12, 18), "hot"),   # 7 days
        (date(2025, 12, 17), "warn"),  # 8 days
        (date(2025, 11, 27), "warn"),  # 28 days
        (date(2025, 11, 26), "info"),  # 29 days
        (date(2025, 12, 25), "hot"),
        (date(2025, 12, 26), "over"),
    ],
)
def test_severity_bands(now, expected):
    assert severity(classify(XMAS, now)) == expected


def test_messages():
    up = classify(XMAS, date(2025, 12, 24))
    assert banner_text(up, 3) == "End of term: 25/12/2025 – 1 day left. You started 3 days ago."
    assert reminder_text(up) == "Only 1 day left to complete this assessment."
    assert submission_line(up) == "Submitted early: 1 day before deadline (25/12/2025)."

    late = classify(XMAS, date(2025, 12, 28))
    assert banner_text(late) == "End of term: 25/12/2025 – Deadline has passed. You are 3 days late."
    assert reminder_text(late) is None
    assert submission_line(late) == "Late submission: 3 days after deadline (25/12/2025)."

    today = classify(XMAS, date(2025, 12, 25))
    assert submission_line(today) == "Submitted on the deadline date (25/12/2025)."
    assert submission_line(None) == ""


def test_far_deadline_has_no_reminder():
    assert reminder_text(classify(XMAS, date(2025, 10, 1))) is None


def test_days_since_start():
    assert days_since(datetime(2025, 3, 1, 10), datetime(2025, 3, 4, 9)) == 2
    assert days_since(datetime(2025, 3, 1, 10), datetime(2025, 3, 1, 11)) == 0
