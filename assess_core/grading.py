from __future__ import annotations
import logging, math
from typing import Callable, Mapping, Optional, Union

from . import config
from .store import AnswerStore
from .types import Assessment, GradingResult, Question, QuestionResult

log = logging.getLogger(__name__)

AnswerProvider = Union[Mapping[str, str], Callable[[str], Optional[str]]]


def _lookup(answers: AnswerProvider, question_id: str) -> str:
    if callable(answers):
        value = answers(question_id)
    else:
        value = answers.get(question_id)
    return value if isinstance(value, str) else ""


def score_question(question: Question, answer: str) -> tuple[int, str]:
    """Apply the rubric in declaration order; returns (earned, hint).

    Single-mark questions take the best matching rule, multi-mark questions
    add up every match. Either way the result ends up in [0, max_points],
    and the last matching rule that carries a hint replaces the default.
    """
    earned = 0
    hint = question.hint
    for rule in question.rubric:
        if not rule.matches(answer):
            continue
        if question.max_points == 1:
            earned = max(earned, min(rule.points, question.max_points))
        else:
            earned += rule.points
        if rule.hint:
            hint = rule.hint
    return max(0, min(earned, question.max_points)), hint


def percentage(total: int, total_points: int) -> int:
    if total_points <= 0:
        return 0
    # round half up
    return int(math.floor(100 * total / total_points + 0.5))


def evaluate(
    assessment: Assessment,
    answers: AnswerProvider,
    store: Optional[AnswerStore] = None,
) -> GradingResult:
    result = GradingResult(assessment_id=assessment.id)
    for question in assessment.questions:
        raw = _lookup(answers, question.id)
        if store is not None:
            store.set_answer(assessment.id, question.id, raw)
        answer = raw.strip()
        earned, hint = score_question(question, answer)
        if config.DEBUG:
            log.debug("grade %s/%s earned=%d/%d", assessment.id, question.id, earned, question.max_points)
        result.results.append(
            QuestionResult(
                id=question.id,
                label=question.display_id,
                earned=earned,
                max=question.max_points,
                answer=answer,
                text=question.text,
                hint=hint,
            )
        )
        result.total += earned
        result.total_points += question.max_points
    result.pct = percentage(result.total, result.total_points)
    return result
