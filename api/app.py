from __future__ import annotations
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from datetime import datetime
import logging, os, typing as t

from assess_core.catalog import load_catalog
from assess_core.config import load_config
from assess_core.deadline import severity, submission_line
from assess_core.errors import (
    CatalogError,
    ExportBlocked,
    ExportError,
    LockedError,
    ValidationError,
)
from assess_core.lifecycle import LifecycleController
from assess_core.report_html import render_html
from .storage import DOWNLOADS_DIR, list_downloads, open_store

log = logging.getLogger(__name__)

CFG = load_config()
CONTROLLER: LifecycleController | None = None
LOAD_ERROR: str | None = None


def _boot() -> None:
    global CONTROLLER, LOAD_ERROR
    try:
        catalog = load_catalog(CFG["CATALOG_PATH"])
    except CatalogError as exc:
        log.error("Failed to load %s: %s", CFG["CATALOG_PATH"], exc)
        LOAD_ERROR = str(exc)
        return
    renderers = [CFG["PREFERRED_RENDERER"]] + [n for n in ("pdf", "html") if n != CFG["PREFERRED_RENDERER"]]
    CONTROLLER = LifecycleController(
        catalog,
        open_store(),
        min_pct=CFG["MIN_PCT_FOR_SUBMIT"],
        downloads_dir=DOWNLOADS_DIR,
        renderers=renderers,
    )
    CONTROLLER.start(datetime.now())


_boot()

app = FastAPI(title="Assessment API")

ALLOWED_ORIGINS = [o for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


# ---- Schemas ----
class StudentReq(BaseModel):
    name: str = ""
    id: str
    teacher: str = ""

class AnswerReq(BaseModel):
    value: str = ""

class SubmitReq(BaseModel):
    answers: dict[str, str] | None = None


# ---- Helpers ----
def _controller() -> LifecycleController:
    if CONTROLLER is None:
        raise HTTPException(503, f"Failed to load assessment: {LOAD_ERROR}")
    return CONTROLLER


def _now() -> datetime:
    return datetime.now()


def _fail(exc: Exception) -> HTTPException:
    if isinstance(exc, LockedError):
        return HTTPException(423, str(exc))
    if isinstance(exc, ExportBlocked):
        return HTTPException(403, {"message": str(exc), "reason": exc.reason})
    if isinstance(exc, ExportError):
        return HTTPException(500, str(exc))
    return HTTPException(400, str(exc))


def _serialize_question(q) -> dict[str, t.Any]:
    return {
        "id": q.id,
        "label": q.display_id,
        "type": q.type,
        "maxPoints": q.max_points,
        "text": q.text,
        "image": q.image,
        "options": list(q.options) or None,
    }


def _session_view(ctl: LifecycleController) -> dict[str, t.Any]:
    ctx = ctl.ctx
    return {
        "state": ctx.state.value,
        "name": ctx.profile.name,
        "id": ctx.profile.id,
        "teacher": ctx.profile.teacher,
        "idLocked": ctx.profile.id_locked,
        "deadlineLocked": ctx.deadline_locked,
        "assessmentId": ctx.assessment_id,
    }


# ---- Health ----
@app.get("/")
def root():
    return {"status": "ok", "service": "assessment-api"}

@app.get("/health")
def health():
    return {
        "catalog_loaded": CONTROLLER is not None,
        "load_error": LOAD_ERROR,
        "min_pct_for_submit": CFG["MIN_PCT_FOR_SUBMIT"],
    }


# ---- Catalog & deadline ----
@app.get("/catalog")
def catalog():
    cat = _controller().ctx.catalog
    return {
        "appId": cat.app_id,
        "version": cat.version,
        "title": cat.title,
        "subtitle": cat.subtitle,
        "teachers": [{"id": tch.id, "name": tch.name} for tch in cat.teachers],
        "assessments": [{"id": a.id, "title": a.title, "subtitle": a.subtitle} for a in cat.assessments],
    }

@app.get("/deadline")
def deadline():
    ctl = _controller()
    info = ctl.check_deadline(_now())
    if info is None:
        return {"deadline": None, "locked": False}
    return {
        "deadline": info.to_dict(),
        "class": severity(info),
        "locked": ctl.ctx.deadline_locked,
    }


# ---- Student & answers ----
@app.get("/student")
def get_student():
    return _session_view(_controller())

@app.post("/student")
def post_student(req: StudentReq):
    ctl = _controller()
    try:
        ctl.enter_identity(req.name, req.id, req.teacher)
    except (ValidationError, LockedError) as exc:
        raise _fail(exc)
    return _session_view(ctl)

@app.post("/assessments/{aid}/load")
def load_assessment(aid: str):
    ctl = _controller()
    try:
        loaded = ctl.select_assessment(aid, _now())
    except (ValidationError, LockedError) as exc:
        raise _fail(exc)
    a = loaded.assessment
    return {
        "assessment": {"id": a.id, "title": a.title, "subtitle": a.subtitle},
        "questions": [_serialize_question(q) for q in a.questions],
        "answers": loaded.answers,
        "idJustLocked": loaded.id_just_locked,
        "session": _session_view(ctl),
    }

@app.put("/answers/{qid}")
def put_answer(qid: str, req: AnswerReq):
    ctl = _controller()
    try:
        ctl.record_answer(qid, req.value)
    except (ValidationError, LockedError) as exc:
        raise _fail(exc)
    return {"ok": True}


# ---- Grading & export ----
@app.post("/submit")
def submit(req: SubmitReq | None = None):
    ctl = _controller()
    try:
        outcome = ctl.submit(_now(), answers=(req.answers if req else None))
    except ValidationError as exc:
        raise _fail(exc)
    snap = outcome.snapshot
    return {
        "exportable": outcome.exportable,
        "reason": outcome.reason,
        "message": outcome.message,
        "submissionLine": submission_line(snap.deadline_info),
        "snapshot": snap.to_dict(),
        "session": _session_view(ctl),
    }

@app.post("/back")
def back():
    ctl = _controller()
    ctl.back()
    return _session_view(ctl)

@app.get("/result/html")
def result_html():
    ctl = _controller()
    if ctl.ctx.snapshot is None:
        raise HTTPException(404, "nothing graded yet")
    return {"html": render_html(ctl.ctx.snapshot, ctl.ctx.catalog)}

@app.get("/export")
def export():
    ctl = _controller()
    try:
        receipt = ctl.export(_now())
    except (ValidationError, ExportBlocked, ExportError) as exc:
        raise _fail(exc)
    return Response(
        content=receipt.payload,
        media_type=receipt.media_type,
        headers={"Content-Disposition": f"attachment; filename=\"{receipt.filename}\""},
    )

@app.get("/downloads")
def downloads():
    return {"files": list_downloads()}
