from __future__ import annotations
import argparse, sys
from collections import Counter
from assess_core.catalog import load_catalog, load_default_catalog
from assess_core.errors import CatalogError

# Rubric sanity checks; a catalog can load fine and still be unwinnable.


def audit(catalog) -> list[str]:
    warnings: list[str] = []
    for a in catalog.assessments:
        for q in a.questions:
            where = f"{a.id}/{q.id}"
            positive = [r.points for r in q.rubric if r.points > 0]
            if not q.rubric:
                warnings.append(f"{where}: no rubric rules, always scores 0")
            elif q.max_points == 1 and not positive:
                warnings.append(f"{where}: no rule awards a mark")
            elif q.max_points > 1 and sum(positive) < q.max_points:
                warnings.append(f"{where}: rules can reach {sum(positive)} of {q.max_points} marks")
            if q.type == "mc":
                if not q.options:
                    warnings.append(f"{where}: multiple-choice question without options")
                elif not any(r.matches(opt) for opt in q.options for r in q.rubric if r.points > 0):
                    warnings.append(f"{where}: no option matches a scoring rule")
    return warnings


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("catalog", nargs="?", help="questions.json / .yaml (defaults to the bundled sample)")
    args = ap.parse_args(argv)
    try:
        catalog = load_catalog(args.catalog) if args.catalog else load_default_catalog()
    except CatalogError as exc:
        print(f"✗ {exc}")
        return 1

    print(f"{catalog.app_id} v{catalog.version}: {len(catalog.assessments)} assessment(s), "
          f"{len(catalog.teachers)} teacher(s)")
    for a in catalog.assessments:
        kinds = Counter(q.type for q in a.questions)
        marks = sum(q.max_points for q in a.questions)
        print(f"  {a.id}: {len(a.questions)} questions ({dict(kinds)}), {marks} marks")
    if catalog.deadline:
        d = catalog.deadline
        print(f"  deadline: {d.day}/{d.month}" + (f"/{d.year}" if d.year else " (current year)"))

    warnings = audit(catalog)
    for w in warnings:
        print(f"  ! {w}")
    if warnings:
        return 2
    print("  ✓ Rubrics look complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
