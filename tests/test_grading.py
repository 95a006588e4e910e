from __future__ import annotations

import re

from assess_core.grading import evaluate, percentage, score_question
from assess_core.types import Assessment, Question, Rule


def _rule(pattern: str, points: int, hint: str = "") -> Rule:
    return Rule(pattern=re.compile(pattern, re.I), points=points, hint=hint)


def _q(max_points: int, rules, hint: str = "", qid: str = "q1") -> Question:
    return Question(id=qid, type="short", max_points=max_points, text="?", rubric=tuple(rules), hint=hint)


def test_single_mark_question_takes_max_not_sum():
    q = _q(1, [_rule("a", 1), _rule("b", 1)])
    earned, _ = score_question(q, "ab")
    assert earned == 1


def test_single_mark_caps_each_rule():
    q = _q(1, [_rule("a", 5), _rule("b", 0)])
    assert score_question(q, "ab")[0] == 1


def test_single_mark_negative_rule_floors_at_zero():
    q = _q(1, [_rule("^$", -2)])
    assert score_question(q, "")[0] == 0


def test_multi_mark_sums_and_clamps_high():
    q = _q(3, [_rule("a", 2), _rule("b", 2), _rule("c", 2)])
    assert score_question(q, "abc")[0] == 3
    assert score_question(q, "a")[0] == 2


def test_multi_mark_clamps_low():
    q = _q(2, [_rule("a", 1), _rule("x", -3)])
    assert score_question(q, "ax")[0] == 0


def test_last_matching_hint_wins():
    q = _q(3, [_rule("a", 1, "first"), _rule("b", 1, "second"), _rule("c", 1, "")], hint="default")
    assert score_question(q, "abc")[1] == "second"
    assert score_question(q, "a")[1] == "first"
    assert score_question(q, "zzz")[1] == "default"
    assert score_question(q, "c")[1] == "default"


def test_blank_answer_still_tested_against_rules():
    q = _q(2, [_rule(r"^\s*$", 0, "Write something.")], hint="default")
    earned, hint = score_question(q, "")
    assert earned == 0
    assert hint == "Write something."


def test_percentage_rounds_half_up_and_handles_zero():
    assert percentage(1, 2) == 50
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13  # 12.5
    assert percentage(0, 0) == 0


def test_evaluate_trims_persists_and_totals(store):
    assessment = Assessment(
        id="a1",
        title="A",
        questions=(
            _q(1, [_rule("^walk$", 1)], qid="q1"),
            _q(2, [_rule("blade", 1), _rule("dust", 1)], qid="q2"),
            _q(1, [_rule("x", 1)], qid="q3"),
        ),
    )
    result = evaluate(assessment, {"q1": "  Walk  ", "q2": "blade"}, store)

    assert [r.earned for r in result.results] == [1, 1, 0]
    assert result.results[0].answer == "Walk"
    assert (result.total, result.total_points, result.pct) == (2, 4, 50)
    assert store.get_answer("a1", "q1") == "  Walk  "
    assert store.has_answer("a1", "q3"), "unanswered questions are written as blank on grading"


def test_evaluate_accepts_callable_provider():
    assessment = Assessment(id="a", title="A", questions=(_q(1, [_rule("yes", 1)]),))
    result = evaluate(assessment, lambda qid: "yes")
    assert result.pct == 100
    assert result.results[0].status == "correct"


def test_empty_assessment_is_zero_percent():
    result = evaluate(Assessment(id="e", title="Empty"), {})
    assert (result.total, result.total_points, result.pct) == (0, 0, 0)
