from __future__ import annotations

from datetime import datetime

import pytest

from assess_core.errors import ExportBlocked, LockedError, ValidationError
from assess_core.lifecycle import DEADLINE_REASON, SCORE_REASON, LifecycleController, State
from assess_core.store import AnswerStore, MemoryBackend
from tests.conftest import build_catalog

BEFORE = datetime(2025, 12, 20, 10, 0)
AFTER = datetime(2025, 12, 27, 10, 0)
PERFECT = {"q1": "Walk", "q2": "blade and dust"}


def _controller(tmp_path, catalog=None, backend=None, min_pct=100) -> LifecycleController:
    return LifecycleController(
        catalog or build_catalog(),
        AnswerStore(backend or MemoryBackend()),
        min_pct=min_pct,
        downloads_dir=tmp_path / "downloads",
        renderers=("html",),
    )


def _ready(ctl: LifecycleController, now=BEFORE) -> None:
    ctl.start(now)
    ctl.enter_identity("Ana", "123", "t1")
    ctl.select_assessment("a1", now)


def test_happy_path_is_exportable(tmp_path):
    ctl = _controller(tmp_path)
    banner = ctl.start(BEFORE)
    assert ctl.ctx.state == State.NO_IDENTITY
    assert banner.css_class == "hot" and banner.reminder

    ctl.enter_identity("Ana", "123", "t1")
    assert ctl.ctx.state == State.IDENTITY_ENTERED
    loaded = ctl.select_assessment("a1", BEFORE)
    assert loaded.id_just_locked
    assert ctl.ctx.state == State.ASSESSMENT_LOADED

    for qid, value in PERFECT.items():
        ctl.record_answer(qid, value)
    outcome = ctl.submit(BEFORE)

    assert outcome.result.pct == 100
    assert outcome.exportable and outcome.reason is None
    assert ctl.ctx.state == State.EXPORTABLE
    assert outcome.snapshot.teacher_name == "Ms Teacher"
    assert outcome.snapshot.deadline_info.status == "upcoming"


def test_score_below_threshold_is_blocked(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    outcome = ctl.submit(BEFORE, answers={"q1": "Walk", "q2": "blade"})
    assert outcome.result.pct == 67
    assert not outcome.exportable
    assert outcome.reason == SCORE_REASON
    assert "You need at least 100%" in outcome.message
    assert ctl.ctx.state == State.EXPORT_BLOCKED
    with pytest.raises(ExportBlocked) as err:
        ctl.export(BEFORE)
    assert err.value.reason == SCORE_REASON


def test_lower_threshold_allows_partial(tmp_path):
    ctl = _controller(tmp_path, min_pct=60)
    _ready(ctl)
    assert ctl.submit(BEFORE, answers={"q1": "Walk", "q2": "blade"}).exportable


def test_overdue_blocks_export_with_deadline_message(tmp_path):
    backend = MemoryBackend()
    ctl = _controller(tmp_path, backend=backend)
    _ready(ctl)
    for qid, value in PERFECT.items():
        ctl.record_answer(qid, value)

    outcome = ctl.submit(AFTER)
    assert outcome.result.pct == 100, "grade is still computed for display"
    assert not outcome.exportable
    assert outcome.reason == DEADLINE_REASON
    assert "deadline has passed" in outcome.message
    assert ctl.ctx.deadline_locked


def test_deadline_lock_freezes_fields(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    ctl.record_answer("q1", "Walk")
    ctl.submit(AFTER)

    with pytest.raises(LockedError):
        ctl.record_answer("q1", "Run")
    with pytest.raises(LockedError):
        ctl.enter_identity("Bob", "123", "t1")
    with pytest.raises(LockedError):
        ctl.select_assessment("a2", AFTER)
    assert ctl.store.get_answer("a1", "q1") == "Walk"

    # the lock lasts the session even if the clock goes back
    with pytest.raises(LockedError):
        ctl.record_answer("q1", "Run")
    outcome = ctl.submit(BEFORE, answers={"q1": "Run"})
    assert not outcome.exportable
    assert ctl.store.get_answer("a1", "q1") == "Walk"


def test_overdue_at_start_locks_immediately(tmp_path):
    ctl = _controller(tmp_path)
    banner = ctl.start(AFTER)
    assert banner.css_class == "over"
    assert ctl.ctx.deadline_locked
    with pytest.raises(LockedError):
        ctl.enter_identity("Ana", "123", "t1")


def test_export_rechecks_deadline(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    assert ctl.submit(BEFORE, answers=PERFECT).exportable
    with pytest.raises(ExportBlocked) as err:
        ctl.export(AFTER)
    assert err.value.reason == DEADLINE_REASON
    assert ctl.ctx.state == State.EXPORT_BLOCKED
    assert ctl.result_for("a1").pct == 100


def test_no_deadline_never_locks(tmp_path):
    ctl = _controller(tmp_path, catalog=build_catalog(DEADLINE=None))
    assert ctl.start(AFTER) is None
    ctl.enter_identity("Ana", "123", "t1")
    ctl.select_assessment("a1", AFTER)
    assert ctl.submit(AFTER, answers=PERFECT).exportable


@pytest.mark.parametrize(
    "name, sid, teacher, message",
    [
        ("", "123", "t1", "Please enter your name."),
        ("Ana", "123", "", "Please select your teacher."),
    ],
)
def test_submit_validation(tmp_path, name, sid, teacher, message):
    ctl = _controller(tmp_path)
    ctl.start(BEFORE)
    ctl.enter_identity(name, sid, teacher)
    ctl.select_assessment("a1", BEFORE)
    with pytest.raises(ValidationError, match=message):
        ctl.submit(BEFORE)
    assert ctl.ctx.state == State.ASSESSMENT_LOADED


def test_unknown_teacher_is_rejected(tmp_path):
    ctl = _controller(tmp_path)
    ctl.start(BEFORE)
    with pytest.raises(ValidationError, match="Please select your teacher."):
        ctl.enter_identity("Ana", "123", "nobody")
    assert ctl.ctx.profile.teacher == ""


def test_free_text_teacher_without_teacher_list(tmp_path):
    ctl = _controller(tmp_path, catalog=build_catalog(TEACHERS=None))
    ctl.start(BEFORE)
    ctl.enter_identity("Ana", "123", "Mr Free")
    ctl.select_assessment("a1", BEFORE)
    outcome = ctl.submit(BEFORE, answers=PERFECT)
    assert outcome.snapshot.teacher_name == "Mr Free"


def test_submit_without_assessment(tmp_path):
    ctl = _controller(tmp_path)
    ctl.start(BEFORE)
    ctl.enter_identity("Ana", "123", "t1")
    with pytest.raises(ValidationError, match="Please select an assessment."):
        ctl.submit(BEFORE)


def test_identity_requires_id(tmp_path):
    ctl = _controller(tmp_path)
    ctl.start(BEFORE)
    with pytest.raises(ValidationError):
        ctl.enter_identity("Ana", "  ", "t1")
    assert ctl.ctx.state == State.NO_IDENTITY
    with pytest.raises(ValidationError):
        ctl.select_assessment("a1", BEFORE)


def test_unknown_assessment_and_question(tmp_path):
    ctl = _controller(tmp_path)
    ctl.start(BEFORE)
    ctl.enter_identity("Ana", "123", "t1")
    with pytest.raises(ValidationError):
        ctl.select_assessment("nope", BEFORE)
    assert not ctl.store.profile().id_locked, "failed load must not latch the id"
    ctl.select_assessment("a1", BEFORE)
    with pytest.raises(ValidationError):
        ctl.record_answer("q9", "x")


def test_id_locked_after_first_load_survives_restart(tmp_path):
    backend = MemoryBackend()
    ctl = _controller(tmp_path, backend=backend)
    _ready(ctl)

    again = _controller(tmp_path, backend=backend)
    again.start(BEFORE)
    assert again.ctx.state == State.IDENTITY_ENTERED
    profile = again.enter_identity("Ana", "999", "t1")
    assert profile.id == "123"
    assert profile.id_locked


def test_switching_assessments_keeps_answers_and_grades(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    ctl.record_answer("q1", "Walk")
    ctl.record_answer("q2", "blade")
    first = ctl.submit(BEFORE)

    loaded = ctl.select_assessment("a2", BEFORE)
    assert loaded.answers == {}
    assert ctl.ctx.state == State.ASSESSMENT_LOADED
    ctl.record_answer("q1", "hammer")
    ctl.submit(BEFORE)

    assert ctl.result_for("a1") is first
    assert ctl.store.answers_for("a1") == {"q1": "Walk", "q2": "blade"}
    assert ctl.store.answers_for("a2") == {"q1": "hammer"}

    back = ctl.select_assessment("a1", BEFORE)
    assert back.answers == {"q1": "Walk", "q2": "blade"}


def test_back_returns_to_form(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    ctl.submit(BEFORE, answers=PERFECT)
    ctl.back()
    assert ctl.ctx.state == State.ASSESSMENT_LOADED
    assert not ctl.ctx.viewing_result


def test_export_downloads_when_no_share_target(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    ctl.submit(BEFORE, answers=PERFECT)
    receipt = ctl.export(BEFORE)
    assert receipt.via == "download"
    assert receipt.filename == "123_Ana_Safety_Basics.html"
    assert receipt.path.read_bytes() == receipt.payload


def test_export_before_submit(tmp_path):
    ctl = _controller(tmp_path)
    _ready(ctl)
    with pytest.raises(ValidationError, match="Submit first!"):
        ctl.export(BEFORE)
