from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

QuestionType = Literal["mc", "short", "extended"]
DeadlineStatus = Literal["upcoming", "today", "overdue"]
ResultStatus = Literal["correct", "partial", "wrong"]


@dataclass(frozen=True)
class Rule:
    pattern: re.Pattern
    points: int
    hint: str = ""

    def matches(self, answer: str) -> bool:
        return self.pattern.search(answer) is not None


@dataclass(frozen=True)
class Question:
    id: str; type: QuestionType; max_points: int; text: str
    image: Optional[str] = None
    options: Tuple[str, ...] = ()
    rubric: Tuple[Rule, ...] = ()
    hint: str = ""

    @property
    def display_id(self) -> str:
        m = re.match(r"^q(\d+)$", self.id, re.I)
        return f"Q{m.group(1)}" if m else self.id.upper()


@dataclass(frozen=True)
class Assessment:
    id: str
    title: str
    subtitle: str = ""
    questions: Tuple[Question, ...] = ()

    def question(self, question_id: str) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)


@dataclass(frozen=True)
class Teacher:
    id: str; name: str


@dataclass(frozen=True)
class DeadlineConfig:
    day: int
    month: int
    label: str = "Assessment deadline"
    year: Optional[int] = None


@dataclass(frozen=True)
class Catalog:
    app_id: str
    version: str
    title: str = ""
    subtitle: str = ""
    teachers: Tuple[Teacher, ...] = ()
    deadline: Optional[DeadlineConfig] = None
    assessments: Tuple[Assessment, ...] = ()

    def assessment(self, assessment_id: str) -> Optional[Assessment]:
        return next((a for a in self.assessments if a.id == assessment_id), None)

    def teacher_name(self, teacher_id: str) -> str:
        return next((t.name for t in self.teachers if t.id == teacher_id), teacher_id or "")


@dataclass(frozen=True)
class DeadlineInfo:
    status: DeadlineStatus
    label: str
    date_str: str
    days_left: Optional[int] = None
    overdue_days: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {"status": self.status, "label": self.label, "dateStr": self.date_str}
        if self.days_left is not None:
            out["daysLeft"] = self.days_left
        if self.overdue_days is not None:
            out["overdueDays"] = self.overdue_days
        return out


@dataclass
class StudentProfile:
    name: str = ""
    id: str = ""
    teacher: str = ""
    id_locked: bool = False


@dataclass
class QuestionResult:
    id: str; earned: int; max: int; answer: str
    text: str = ""
    hint: str = ""
    label: str = ""

    @property
    def status(self) -> ResultStatus:
        if self.earned == self.max:
            return "correct"
        return "partial" if self.earned > 0 else "wrong"


@dataclass
class GradingResult:
    assessment_id: str
    results: List[QuestionResult] = field(default_factory=list)
    total: int = 0
    total_points: int = 0
    pct: int = 0


@dataclass
class SubmissionSnapshot:
    student_name: str
    student_id: str
    teacher_name: str
    assessment_title: str
    assessment_subtitle: str
    points: int
    total_points: int
    pct: int
    deadline_info: Optional[DeadlineInfo] = None
    results: List[QuestionResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "studentName": self.student_name,
            "studentId": self.student_id,
            "teacherName": self.teacher_name,
            "assessmentTitle": self.assessment_title,
            "assessmentSubtitle": self.assessment_subtitle,
            "points": self.points,
            "totalPoints": self.total_points,
            "pct": self.pct,
            "deadlineInfo": self.deadline_info.to_dict() if self.deadline_info else None,
            "results": [
                {"id": r.id, "label": r.label or r.id, "earned": r.earned, "max": r.max, "answer": r.answer,
                 "text": r.text, "hint": r.hint, "status": r.status}
                for r in self.results
            ],
        }
