"""Where the API keeps the student's document and exported files.

Everything lives under ``DATA_DIR`` as plain JSON files so the service
survives restarts. One device, one writer: there is no locking beyond the
atomic file replace done by the backend.
"""

from __future__ import annotations

import os
from pathlib import Path

from assess_core.store import AnswerStore, FileBackend


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
STORAGE_DIR = DATA_ROOT / "storage"
DOWNLOADS_DIR = DATA_ROOT / "downloads"


def _ensure_dirs() -> None:
    STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    DOWNLOADS_DIR.mkdir(parents=True, exist_ok=True)


def open_store() -> AnswerStore:
    _ensure_dirs()
    return AnswerStore(FileBackend(STORAGE_DIR))


def list_downloads() -> list[str]:
    if not DOWNLOADS_DIR.exists():
        return []
    return sorted(p.name for p in DOWNLOADS_DIR.iterdir() if p.is_file())
