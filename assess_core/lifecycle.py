"""Session state machine for one student on one device.

    NO_IDENTITY -> IDENTITY_ENTERED -> ASSESSMENT_LOADED -> GRADED
                                                  -> EXPORTABLE | EXPORT_BLOCKED

Two latches run alongside the main states. ``id_locked`` is persisted and
set by the first assessment load. ``deadline_locked`` lasts for the session
and is set whenever the deadline is found to be overdue; after that answers,
identity and the assessment choice are read-only and export stays blocked,
although grading can still be computed for display.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

from . import config, deadline as deadline_policy
from .errors import ExportBlocked, LockedError, ValidationError
from .export import DownloadExporter, ExportReceipt, Exporter, deliver, render_snapshot
from .grading import evaluate
from .store import AnswerStore
from .types import (
    Assessment,
    Catalog,
    DeadlineInfo,
    GradingResult,
    StudentProfile,
    SubmissionSnapshot,
)

log = logging.getLogger(__name__)

SCORE_REASON = "score"
DEADLINE_REASON = "deadline"


class State(str, enum.Enum):
    NO_IDENTITY = "no_identity"
    IDENTITY_ENTERED = "identity_entered"
    ASSESSMENT_LOADED = "assessment_loaded"
    GRADED = "graded"
    EXPORTABLE = "exportable"
    EXPORT_BLOCKED = "export_blocked"


@dataclass
class SessionContext:
    """Everything the current session owns; nothing here is module-global."""

    catalog: Catalog
    state: State = State.NO_IDENTITY
    profile: StudentProfile = field(default_factory=StudentProfile)
    assessment_id: Optional[str] = None
    deadline_locked: bool = False
    deadline_info: Optional[DeadlineInfo] = None
    first_seen: Optional[datetime] = None
    results: Dict[str, GradingResult] = field(default_factory=dict)
    snapshot: Optional[SubmissionSnapshot] = None
    viewing_result: bool = False

    @property
    def assessment(self) -> Optional[Assessment]:
        if self.assessment_id is None:
            return None
        return self.catalog.assessment(self.assessment_id)


@dataclass
class Banner:
    info: DeadlineInfo
    css_class: str
    text: str
    reminder: Optional[str] = None


@dataclass
class LoadedAssessment:
    assessment: Assessment
    answers: Dict[str, str]
    id_just_locked: bool = False


@dataclass
class SubmissionOutcome:
    result: GradingResult
    snapshot: SubmissionSnapshot
    exportable: bool
    reason: Optional[str]
    message: str


class LifecycleController:
    def __init__(
        self,
        catalog: Catalog,
        store: AnswerStore,
        min_pct: Optional[int] = None,
        downloads_dir: str | Path = "downloads",
        renderers: Iterable[str] = ("pdf", "html"),
    ):
        self.store = store
        self.store.initialize(catalog.app_id, catalog.version)
        self.ctx = SessionContext(catalog=catalog)
        self.min_pct = config.MIN_PCT_FOR_SUBMIT if min_pct is None else int(min_pct)
        self.downloads = DownloadExporter(downloads_dir)
        self.renderers = tuple(renderers)

    # -- latches ---------------------------------------------------------
    def _lock_for_deadline(self) -> None:
        if not self.ctx.deadline_locked:
            self.ctx.deadline_locked = True
            log.info("deadline passed: fields locked for the rest of the session")

    def check_deadline(self, now: datetime) -> Optional[DeadlineInfo]:
        info = deadline_policy.classify(self.ctx.catalog.deadline, now)
        self.ctx.deadline_info = info
        if deadline_policy.is_overdue(info):
            self._lock_for_deadline()
        return info

    def _require_unlocked(self, what: str) -> None:
        if self.ctx.deadline_locked:
            raise LockedError(f"The deadline has passed – {what} can no longer be changed.")

    # -- transitions -----------------------------------------------------
    def start(self, now: datetime) -> Optional[Banner]:
        """Restore the stored identity and evaluate the deadline banner."""
        self.ctx.profile = self.store.profile()
        if self.ctx.profile.id:
            self.ctx.state = State.IDENTITY_ENTERED
        self.ctx.first_seen = self.store.first_seen(now)
        info = self.check_deadline(now)
        if info is None:
            return None
        since = deadline_policy.days_since(self.ctx.first_seen, now)
        return Banner(
            info=info,
            css_class=deadline_policy.severity(info),
            text=deadline_policy.banner_text(info, since),
            reminder=deadline_policy.reminder_text(info),
        )

    def enter_identity(self, name: str, student_id: str, teacher: str) -> StudentProfile:
        self._require_unlocked("your details")
        name, student_id, teacher = name.strip(), student_id.strip(), (teacher or "").strip()
        if not student_id:
            raise ValidationError("Please enter your Student ID first.")
        if teacher and not self._known_teacher(teacher):
            raise ValidationError("Please select your teacher.")
        self.ctx.profile = self.store.save_profile(name, student_id, teacher)
        if self.ctx.state == State.NO_IDENTITY:
            self.ctx.state = State.IDENTITY_ENTERED
        return self.ctx.profile

    def select_assessment(self, assessment_id: str, now: datetime) -> LoadedAssessment:
        self.check_deadline(now)
        self._require_unlocked("the assessment")
        if not self.ctx.profile.id:
            raise ValidationError("Please enter your Student ID first.")
        assessment = self.ctx.catalog.assessment(assessment_id)
        if assessment is None:
            raise ValidationError(f"Unknown assessment {assessment_id!r}.")
        just_locked = self.store.lock_id()
        self.ctx.profile = self.store.profile()
        self.ctx.assessment_id = assessment.id
        self.ctx.state = State.ASSESSMENT_LOADED
        self.ctx.viewing_result = False
        self.ctx.snapshot = None
        return LoadedAssessment(
            assessment=assessment,
            answers=self.store.answers_for(assessment.id),
            id_just_locked=just_locked,
        )

    def record_answer(self, question_id: str, value: str) -> None:
        self._require_unlocked("answers")
        assessment = self.ctx.assessment
        if assessment is None:
            raise ValidationError("Please select an assessment.")
        if assessment.question(question_id) is None:
            raise ValidationError(f"Unknown question {question_id!r}.")
        self.store.set_answer(assessment.id, question_id, value or "")

    def _known_teacher(self, teacher_id: str) -> bool:
        teachers = self.ctx.catalog.teachers
        return not teachers or any(t.id == teacher_id for t in teachers)

    def _validate_for_submit(self) -> Assessment:
        p = self.ctx.profile
        if not p.name:
            raise ValidationError("Please enter your name.")
        if not p.id:
            raise ValidationError("Please enter your Student ID.")
        if not p.teacher or not self._known_teacher(p.teacher):
            raise ValidationError("Please select your teacher.")
        assessment = self.ctx.assessment
        if assessment is None:
            raise ValidationError("Please select an assessment.")
        return assessment

    def submit(self, now: datetime, answers: Optional[Dict[str, str]] = None) -> SubmissionOutcome:
        """Grade the loaded assessment and work out the export gate.

        ``answers`` are the current field values; questions missing from it
        use the stored value. Pending values are ignored once the deadline
        lock is on, so the stored answers are graded unchanged.
        """
        assessment = self._validate_for_submit()
        info = self.check_deadline(now)
        stored = self.store.answers_for(assessment.id)
        if answers and not self.ctx.deadline_locked:
            stored.update({k: v for k, v in answers.items() if assessment.question(k) is not None})
        # grading after the lock must not write anything back
        result = evaluate(assessment, stored, None if self.ctx.deadline_locked else self.store)
        self.ctx.results[assessment.id] = result

        p = self.ctx.profile
        snapshot = SubmissionSnapshot(
            student_name=p.name,
            student_id=p.id,
            teacher_name=self.ctx.catalog.teacher_name(p.teacher),
            assessment_title=assessment.title,
            assessment_subtitle=assessment.subtitle,
            points=result.total,
            total_points=result.total_points,
            pct=result.pct,
            deadline_info=info,
            results=list(result.results),
        )
        self.ctx.snapshot = snapshot
        self.ctx.viewing_result = True
        self.ctx.state = State.GRADED

        exportable, reason, message = self._gate(result.pct, info)
        self.ctx.state = State.EXPORTABLE if exportable else State.EXPORT_BLOCKED
        log.info("graded %s: %d/%d (%d%%) -> %s", assessment.id, result.total,
                 result.total_points, result.pct, self.ctx.state.value)
        return SubmissionOutcome(result, snapshot, exportable, reason, message)

    def _gate(self, pct: int, info: Optional[DeadlineInfo]) -> tuple[bool, Optional[str], str]:
        if pct < self.min_pct:
            return False, SCORE_REASON, (
                f"You have {pct}%. You need at least {self.min_pct}% to email your work."
            )
        if self.ctx.deadline_locked or deadline_policy.is_overdue(info):
            return False, DEADLINE_REASON, "The deadline has passed – emailing is disabled."
        return True, None, "Great job! You can now email your work."

    def back(self) -> None:
        self.ctx.viewing_result = False
        if self.ctx.assessment_id is not None:
            self.ctx.state = State.ASSESSMENT_LOADED

    def result_for(self, assessment_id: str) -> Optional[GradingResult]:
        return self.ctx.results.get(assessment_id)

    def export(self, now: datetime, share: Optional[Exporter] = None) -> ExportReceipt:
        snapshot = self.ctx.snapshot
        if snapshot is None or self.ctx.state not in (State.EXPORTABLE, State.EXPORT_BLOCKED):
            raise ValidationError("Submit first!")
        if snapshot.pct < self.min_pct:
            raise ExportBlocked(
                f"You must reach at least {self.min_pct}% before emailing your work.", SCORE_REASON
            )
        self.check_deadline(now)
        if self.ctx.deadline_locked:
            self.ctx.state = State.EXPORT_BLOCKED
            raise ExportBlocked(
                "The submission deadline has passed – emailing is now disabled until next year.",
                DEADLINE_REASON,
            )
        payload, media_type, filename = render_snapshot(snapshot, self.ctx.catalog, self.renderers)
        return deliver(payload, filename, media_type, share, self.downloads)
