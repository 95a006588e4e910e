from __future__ import annotations
import argparse, logging, os
from datetime import datetime
from assess_core.catalog import load_catalog, load_default_catalog
from assess_core.errors import AssessmentError, CatalogError
from assess_core.lifecycle import LifecycleController
from assess_core.store import AnswerStore, FileBackend


def ask(prompt: str, options=None, current: str = "") -> str:
    suffix = f" [{current}]" if current else ""
    if options:
        print(prompt)
        for i, opt in enumerate(options): print(f"  [{i}] {opt}")
        while True:
            v = input(f"Your choice (index){suffix}: ").strip()
            if not v and current: return current
            if v.isdigit() and int(v) < len(options): return options[int(v)]
            print("Enter a number index.")
    v = input(prompt + suffix + " ").strip()
    return v or current


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Answer and self-grade an assessment in the terminal.")
    ap.add_argument("--catalog", help="questions.json (defaults to the bundled sample)")
    ap.add_argument("--data-dir", default=os.getenv("DATA_DIR", "data"))
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="[%(levelname)s] %(message)s")

    try:
        catalog = load_catalog(args.catalog) if args.catalog else load_default_catalog()
    except CatalogError as exc:
        print(f"Failed to load assessment: {exc}")
        return 1

    store = AnswerStore(FileBackend(os.path.join(args.data_dir, "storage")))
    ctl = LifecycleController(catalog, store, downloads_dir=os.path.join(args.data_dir, "downloads"))
    print(catalog.title); print(catalog.subtitle)
    banner = ctl.start(datetime.now())
    if banner:
        print(f"\n{banner.text}")
        if banner.reminder: print(banner.reminder)

    if ctl.ctx.deadline_locked:
        print("The deadline has passed – your answers are locked.")
        return 0

    p = ctl.ctx.profile
    try:
        name = ask("Your name:", current=p.name)
        sid = p.id if p.id_locked else ask("Student ID:", current=p.id)
        teachers = [tch.name for tch in catalog.teachers]
        tname = ask("Teacher:", teachers, current=catalog.teacher_name(p.teacher)) if teachers else ""
        tid = next((tch.id for tch in catalog.teachers if tch.name == tname), "")
        ctl.enter_identity(name, sid, tid)

        titles = [a.title for a in catalog.assessments]
        chosen = ask("Assessment:", titles)
        assessment = catalog.assessments[titles.index(chosen)]
        loaded = ctl.select_assessment(assessment.id, datetime.now())
        if loaded.id_just_locked: print("Student ID locked for this device.")
        for q in assessment.questions:
            print(f"\n{q.display_id} – {q.max_points} mark{'s' if q.max_points != 1 else ''}")
            value = ask(q.text, list(q.options) or None, current=loaded.answers.get(q.id, ""))
            ctl.record_answer(q.id, value)

        outcome = ctl.submit(datetime.now())
    except AssessmentError as exc:
        print(exc)
        return 2

    for r in outcome.result.results:
        print(f"{r.label}: {r.earned}/{r.max}" + (f"  Hint: {r.hint}" if r.earned < r.max and r.hint else ""))
    print(f"\nScore: {outcome.result.total}/{outcome.result.total_points} ({outcome.result.pct}%)")
    print(outcome.message)
    if outcome.exportable:
        try:
            receipt = ctl.export(datetime.now())
        except AssessmentError as exc:
            print(f"Export failed: {exc}")
            return 3
        print(f"Saved: {receipt.path}")
    return 0


if __name__ == "__main__": raise SystemExit(main())
