from __future__ import annotations

import copy
from typing import Any

import pytest

from assess_core.catalog import parse_catalog
from assess_core.store import AnswerStore, MemoryBackend
from assess_core.types import Catalog


BASE_CATALOG: dict[str, Any] = {
    "APP_ID": "TEST",
    "VERSION": "v1",
    "APP_TITLE": "Test School",
    "APP_SUBTITLE": "Test Subject",
    "TEACHERS": [{"id": "t1", "name": "Ms Teacher"}],
    "DEADLINE": {"day": 25, "month": 12, "label": "End of term"},
    "ASSESSMENTS": [
        {
            "id": "a1",
            "title": "Safety Basics",
            "subtitle": "Part A",
            "questions": [
                {
                    "id": "q1",
                    "type": "mc",
                    "maxPoints": 1,
                    "text": "Pick the safe option",
                    "options": ["Run", "Walk"],
                    "rubric": [{"check": "^walk$", "points": 1}],
                    "hint": "Slow down.",
                },
                {
                    "id": "q2",
                    "type": "short",
                    "maxPoints": 2,
                    "text": "Two hazards?",
                    "rubric": [
                        {"check": "blade", "points": 1},
                        {"check": "dust", "points": 1, "hint": "Good, what else?"},
                    ],
                },
            ],
        },
        {
            "id": "a2",
            "title": "Tools",
            "questions": [
                {
                    "id": "q1",
                    "type": "extended",
                    "maxPoints": 1,
                    "text": "Name a tool",
                    "rubric": [{"check": "hammer|saw", "points": 1}],
                }
            ],
        },
    ],
}


def build_catalog(**overrides: Any) -> Catalog:
    """Deterministic catalog for tests; top-level keys may be overridden."""

    raw = copy.deepcopy(BASE_CATALOG)
    for key, value in overrides.items():
        if value is None:
            raw.pop(key, None)
        else:
            raw[key] = value
    return parse_catalog(raw)


@pytest.fixture
def catalog() -> Catalog:
    return build_catalog()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend) -> AnswerStore:
    s = AnswerStore(backend)
    s.initialize("TEST", "v1")
    return s
