from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# Percentage a student needs before the graded work may be exported.
MIN_PCT_FOR_SUBMIT: int = 100

XOR_KEY: int = 47
LEGACY_STORAGE_KEY: str = "TECH_DATA"
DEFAULT_VERSION: str = "noversion"

DEFAULT_DEADLINE_LABEL: str = "Assessment deadline"
URGENT_DAYS: int = 7
WARNING_DAYS: int = 28

DEBUG: bool = False
CATALOG_PATH: str = "questions.json"
DATA_DIR: str = "data"
PREFERRED_RENDERER: str = "pdf"

# env overrides for deployments; defaults match the classroom build.
MIN_PCT_FOR_SUBMIT = _env_int("MIN_PCT_FOR_SUBMIT", MIN_PCT_FOR_SUBMIT)
URGENT_DAYS = _env_int("URGENT_DAYS", URGENT_DAYS)
WARNING_DAYS = _env_int("WARNING_DAYS", WARNING_DAYS)
DEBUG = _env_bool("DEBUG", DEBUG)
CATALOG_PATH = _env_str("CATALOG_PATH", CATALOG_PATH)
DATA_DIR = _env_str("DATA_DIR", DATA_DIR)
PREFERRED_RENDERER = _env_str("PREFERRED_RENDERER", PREFERRED_RENDERER)


def load_config(path: str = "config.json") -> dict:
    """Merge an optional config.json with environment overrides."""
    cfg = {
        "MIN_PCT_FOR_SUBMIT": MIN_PCT_FOR_SUBMIT,
        "CATALOG_PATH": CATALOG_PATH,
        "DATA_DIR": DATA_DIR,
        "PREFERRED_RENDERER": PREFERRED_RENDERER,
    }
    p = pathlib.Path(path)
    if p.exists():
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            raw = {}
        if isinstance(raw, dict):
            cfg.update({k: v for k, v in raw.items() if k in cfg})
    e = os.environ
    if e.get("MIN_PCT_FOR_SUBMIT"): cfg["MIN_PCT_FOR_SUBMIT"] = _env_int("MIN_PCT_FOR_SUBMIT", MIN_PCT_FOR_SUBMIT)
    if e.get("CATALOG_PATH"): cfg["CATALOG_PATH"] = e["CATALOG_PATH"]
    if e.get("DATA_DIR"): cfg["DATA_DIR"] = e["DATA_DIR"]
    if e.get("PREFERRED_RENDERER"): cfg["PREFERRED_RENDERER"] = e["PREFERRED_RENDERER"]
    try:
        cfg["MIN_PCT_FOR_SUBMIT"] = int(cfg["MIN_PCT_FOR_SUBMIT"])
    except (TypeError, ValueError):
        cfg["MIN_PCT_FOR_SUBMIT"] = MIN_PCT_FOR_SUBMIT
    return cfg
