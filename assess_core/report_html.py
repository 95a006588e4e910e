from __future__ import annotations
from html import escape
from pathlib import Path
from typing import List, Optional

from .deadline import submission_line
from .types import Catalog, QuestionResult, SubmissionSnapshot

_RESULT_TEXT = {"correct": "Correct", "partial": "Partially correct", "wrong": "Incorrect"}


def _feedback(r: QuestionResult) -> str:
    answer = escape(r.answer) if r.answer else "<em>No answer provided</em>"
    hint = ""
    if r.earned < r.max and r.hint:
        hint = f"<div class=\"hint-inline\"><strong>Hint:</strong> {escape(r.hint)}</div>"
    return (
        f"<div class=\"feedback {r.status}\">"
        f"<h3>{escape(r.label or r.id)}: {r.text}</h3>"
        f"<p><strong>Your answer:</strong> {answer}</p>"
        f"<p><strong>Result:</strong> {_RESULT_TEXT[r.status]} ({r.earned}/{r.max} marks)</p>"
        f"{hint}</div>"
    )


def render_html(snapshot: SubmissionSnapshot, catalog: Optional[Catalog] = None) -> str:
    title = escape((catalog.title if catalog else "") or "Assessment")
    subtitle = escape(catalog.subtitle if catalog else "")
    part = ""
    if snapshot.assessment_subtitle:
        part = f"<p><b>Part:</b> {escape(snapshot.assessment_subtitle)}</p>"
    line = submission_line(snapshot.deadline_info)
    deadline_html = f"<p class=\"submission\">{escape(line)}</p>" if line else ""
    blocks: List[str] = [_feedback(r) for r in snapshot.results]

    # question text is authored HTML in the bank, so it is not escaped
    return f"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{escape(snapshot.assessment_title)}</title>
<style>
 body{{font-family:system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,'Helvetica Neue',Arial}}
 .wrap{{max-width:960px;margin:40px auto;padding:0 16px}}
 header{{background:#6e1818;color:#fff;padding:12px 16px}}
 .feedback{{border-left:4px solid #999;padding:4px 12px;margin:12px 0}}
 .feedback.correct{{border-color:#2e7d32}}
 .feedback.partial{{border-color:#f9a825}}
 .feedback.wrong{{border-color:#c62828}}
 .hint-inline{{font-size:.95rem;color:#555}}
</style>
</head>
<body>
<header><h1>{title}</h1><div>{subtitle}</div></header>
<div class="wrap">
  <div class="result-header">
    <p><b>Student:</b> {escape(snapshot.student_name)} &nbsp; <b>ID:</b> {escape(snapshot.student_id)}</p>
    <p><b>Teacher:</b> {escape(snapshot.teacher_name)}</p>
    <p><b>Assessment:</b> {escape(snapshot.assessment_title)}</p>
    {part}
    <p><b>Score:</b> {snapshot.points}/{snapshot.total_points} ({snapshot.pct}%)</p>
    {deadline_html}
  </div>
  {''.join(blocks)}
</div>
</body>
</html>"""


def export_report_html(snapshot: SubmissionSnapshot, path: str, catalog: Optional[Catalog] = None) -> str:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_html(snapshot, catalog), encoding="utf-8")
    return str(out)


class HtmlRenderer:
    media_type = "text/html"
    extension = "html"

    def render(self, snapshot: SubmissionSnapshot, catalog: Catalog) -> bytes:
        return render_html(snapshot, catalog).encode("utf-8")
