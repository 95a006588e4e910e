"""Deadline classification and the messages built from it.

``classify`` is pure: the same ``(config, now)`` always yields the same
answer. The deadline year is ``config.year`` when the catalog pins one and
``now.year`` otherwise, so an unpinned deadline never rolls over into the
next calendar year.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from . import config as cfg
from .types import DeadlineConfig, DeadlineInfo


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def deadline_date(deadline: DeadlineConfig, today: date) -> date:
    year = deadline.year if deadline.year is not None else today.year
    # day overflow rolls forward (31 Apr -> 1 May, 29 Feb -> 1 Mar)
    return date(year, deadline.month, 1) + timedelta(days=deadline.day - 1)


def format_date(d: date) -> str:
    return f"{d.day}/{d.month}/{d.year}"


def classify(deadline: Optional[DeadlineConfig], now: datetime | date) -> Optional[DeadlineInfo]:
    if deadline is None:
        return None
    today = now.date() if isinstance(now, datetime) else now
    due = deadline_date(deadline, today)
    diff = (due - today).days
    label = deadline.label or cfg.DEFAULT_DEADLINE_LABEL
    date_str = format_date(due)
    if diff > 0:
        return DeadlineInfo(status="upcoming", label=label, date_str=date_str, days_left=diff)
    if diff == 0:
        return DeadlineInfo(status="today", label=label, date_str=date_str, days_left=0)
    return DeadlineInfo(status="overdue", label=label, date_str=date_str, overdue_days=-diff)


def is_overdue(info: Optional[DeadlineInfo]) -> bool:
    return info is not None and info.status == "overdue"


def severity(info: DeadlineInfo) -> str:
    """Banner class: ``hot``, ``warn``, ``info`` or ``over``."""
    if info.status == "overdue":
        return "over"
    if info.status == "today":
        return "hot"
    days = info.days_left or 0
    if days <= cfg.URGENT_DAYS:
        return "hot"
    if days <= cfg.WARNING_DAYS:
        return "warn"
    return "info"


def days_since(first_seen: datetime, now: datetime) -> int:
    if (first_seen.tzinfo is None) != (now.tzinfo is None):
        if first_seen.tzinfo is not None:
            first_seen = first_seen.astimezone().replace(tzinfo=None)
        else:
            now = now.astimezone().replace(tzinfo=None)
    return (now - first_seen) // timedelta(days=1)


def banner_text(info: DeadlineInfo, days_since_start: Optional[int] = None) -> str:
    head = f"{info.label}: {info.date_str}"
    if info.status == "upcoming":
        n = info.days_left or 0
        text = f"{head} – {n} day{_plural(n)} left."
        if days_since_start is not None and days_since_start >= 0:
            text += f" You started {days_since_start} day{_plural(days_since_start)} ago."
        return text
    if info.status == "today":
        return f"{head} – Deadline is today!"
    n = info.overdue_days or 0
    return f"{head} – Deadline has passed. You are {n} day{_plural(n)} late."


def reminder_text(info: Optional[DeadlineInfo]) -> Optional[str]:
    """Short nudge shown when the deadline is close; None otherwise."""
    if info is None:
        return None
    if info.status == "upcoming" and 0 < (info.days_left or 0) <= cfg.URGENT_DAYS:
        n = info.days_left or 0
        return f"Only {n} day{_plural(n)} left to complete this assessment."
    if info.status == "today":
        return "Deadline is today – make sure you submit your work."
    return None


def submission_line(info: Optional[DeadlineInfo]) -> str:
    if info is None:
        return ""
    if info.status == "upcoming":
        n = info.days_left or 0
        return f"Submitted early: {n} day{_plural(n)} before deadline ({info.date_str})."
    if info.status == "today":
        return f"Submitted on the deadline date ({info.date_str})."
    n = info.overdue_days or 0
    return f"Late submission: {n} day{_plural(n)} after deadline ({info.date_str})."
