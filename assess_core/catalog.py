"""Load a question bank into typed, immutable assessment structures.

Rubric patterns are compiled here, once, so that a broken rule fails the
catalog load instead of a grading pass. Keys are read in either the
upper-case form used by ``questions.json`` (``APP_ID``, ``ASSESSMENTS``...)
or camelCase (``appId``, ``assessments``...).
"""
from __future__ import annotations

import importlib.resources as ir
import json
import logging
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import yaml

from . import config
from .errors import CatalogError
from .types import Assessment, Catalog, DeadlineConfig, Question, Rule, Teacher

log = logging.getLogger(__name__)

_TYPE_ALIASES = {
    "mc": "mc", "multiple-choice": "mc", "multiple_choice": "mc", "mcq": "mc",
    "short": "short", "short-answer": "short", "short_answer": "short",
    "extended": "extended", "extended-answer": "extended", "extended_answer": "extended",
}

# JS-style flag letters; g/u/y have no meaning for a single search.
_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
_IGNORED_FLAGS = set("guy")


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def compile_pattern(source: str, flags: Optional[str] = "i") -> re.Pattern:
    bits = 0
    for letter in flags if flags is not None else "i":
        if letter in _FLAG_MAP:
            bits |= _FLAG_MAP[letter]
        elif letter not in _IGNORED_FLAGS:
            raise CatalogError(f"Unsupported regex flag {letter!r} in /{source}/{flags}")
    try:
        return re.compile(source, bits)
    except re.error as exc:
        raise CatalogError(f"Invalid rubric pattern /{source}/: {exc}") from exc


def _as_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise CatalogError(f"{what} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{what} must be an integer, got {value!r}") from exc


def _as_list(value: Any, what: str) -> Sequence[Any]:
    if not value:
        return ()
    if not isinstance(value, (list, tuple)):
        raise CatalogError(f"{what} must be a list")
    return value


def _coerce_rule(raw: Mapping[str, Any], where: str) -> Rule:
    if not isinstance(raw, Mapping):
        raise CatalogError(f"{where}: rule must be an object")
    source = _pick(raw, "check", "pattern")
    if not isinstance(source, str):
        raise CatalogError(f"{where}: rule is missing its 'check' pattern")
    return Rule(
        pattern=compile_pattern(source, _pick(raw, "flags")),
        points=_as_int(raw.get("points", 0), f"{where}: points"),
        hint=str(raw.get("hint") or ""),
    )


def _coerce_question(raw: Mapping[str, Any], assessment_id: str) -> Question:
    if not isinstance(raw, Mapping):
        raise CatalogError(f"Assessment {assessment_id!r} has a question that is not an object")
    qid = raw.get("id")
    if not qid:
        raise CatalogError(f"Assessment {assessment_id!r} has a question without an id")
    where = f"{assessment_id}/{qid}"
    qtype = _TYPE_ALIASES.get(str(raw.get("type", "")).lower())
    if qtype is None:
        raise CatalogError(f"{where}: unknown question type {raw.get('type')!r}")
    max_points = _as_int(_pick(raw, "maxPoints", "max_points"), f"{where}: maxPoints")
    if max_points <= 0:
        raise CatalogError(f"{where}: maxPoints must be positive")
    options = tuple(str(o) for o in _as_list(raw.get("options"), f"{where}: options"))
    rubric = tuple(
        _coerce_rule(rule, f"{where} rule #{idx}")
        for idx, rule in enumerate(_as_list(raw.get("rubric"), f"{where}: rubric"), start=1)
    )
    return Question(
        id=str(qid),
        type=qtype,  # type: ignore[arg-type]
        max_points=max_points,
        text=str(raw.get("text") or ""),
        image=raw.get("image") or None,
        options=options if qtype == "mc" else (),
        rubric=rubric,
        hint=str(raw.get("hint") or ""),
    )


def _coerce_assessment(raw: Mapping[str, Any]) -> Assessment:
    if not isinstance(raw, Mapping):
        raise CatalogError("Each assessment must be an object")
    aid = raw.get("id")
    if not aid:
        raise CatalogError("Assessment is missing its id")
    questions: List[Question] = []
    seen: set[str] = set()
    for q in _as_list(raw.get("questions"), f"Assessment {aid!r} questions"):
        question = _coerce_question(q, str(aid))
        if question.id in seen:
            raise CatalogError(f"Assessment {aid!r} repeats question id {question.id!r}")
        seen.add(question.id)
        questions.append(question)
    return Assessment(
        id=str(aid),
        title=str(raw.get("title") or aid),
        subtitle=str(raw.get("subtitle") or ""),
        questions=tuple(questions),
    )


def _coerce_teacher(raw: Any) -> Teacher:
    if not isinstance(raw, Mapping):
        raise CatalogError(f"TEACHERS entries must be objects with id and name, got {raw!r}")
    return Teacher(id=str(raw.get("id", "")), name=str(raw.get("name", "")))


def _coerce_deadline(raw: Any) -> Optional[DeadlineConfig]:
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise CatalogError("DEADLINE must be an object with day and month")
    day = _as_int(raw.get("day"), "DEADLINE.day")
    month = _as_int(raw.get("month"), "DEADLINE.month")
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise CatalogError(f"DEADLINE {day}/{month} is not a calendar date")
    year = raw.get("year")
    return DeadlineConfig(
        day=day,
        month=month,
        label=str(raw.get("label") or config.DEFAULT_DEADLINE_LABEL),
        year=_as_int(year, "DEADLINE.year") if year is not None else None,
    )


def parse_catalog(raw: Any) -> Catalog:
    if not isinstance(raw, Mapping):
        raise CatalogError("Question bank must be a JSON object")
    app_id = _pick(raw, "APP_ID", "appId")
    if not app_id:
        raise CatalogError("questions.json missing APP_ID")
    teachers = tuple(_coerce_teacher(t) for t in _as_list(_pick(raw, "TEACHERS", "teachers"), "TEACHERS"))
    assessments = _as_list(_pick(raw, "ASSESSMENTS", "assessments"), "ASSESSMENTS")
    parsed = tuple(_coerce_assessment(a) for a in assessments)
    ids = [a.id for a in parsed]
    if len(ids) != len(set(ids)):
        raise CatalogError("Assessment ids must be unique")
    catalog = Catalog(
        app_id=str(app_id),
        version=str(_pick(raw, "VERSION", "version", default=config.DEFAULT_VERSION)),
        title=str(_pick(raw, "APP_TITLE", "title", default="")),
        subtitle=str(_pick(raw, "APP_SUBTITLE", "subtitle", default="")),
        teachers=teachers,
        deadline=_coerce_deadline(_pick(raw, "DEADLINE", "deadline")),
        assessments=parsed,
    )
    if config.DEBUG:
        log.debug("catalog %s v%s ready: %d assessments", catalog.app_id, catalog.version, len(parsed))
    return catalog


def load_catalog(path: str | Path) -> Catalog:
    path = Path(path)
    if not path.exists():
        raise CatalogError(f"Question bank not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yaml", ".yml"}:
            raw = yaml.safe_load(text)
        else:
            raw = json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise CatalogError(f"Failed to read {path.name}: {exc}") from exc
    return parse_catalog(raw)


def load_default_catalog() -> Catalog:
    """The sample bank shipped with the package."""
    data = ir.files(__package__).joinpath("data/questions.json").read_text(encoding="utf-8")
    return parse_catalog(json.loads(data))
