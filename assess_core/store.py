"""Versioned key-value persistence for the student's document.

The whole document lives under one key derived from ``(app_id, version)``:

    {"name", "id", "teacher", "idLocked",
     "answers": {assessment_id: {question_id: <obfuscated>}},
     "deadlineInfo": {"firstSeen": <iso timestamp>}}

There is exactly one writer, so every change is a synchronous
read-modify-write of the full document. Corrupt values never reach the
caller: they are logged and replaced by the empty default.
"""
from __future__ import annotations

import copy
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from . import config
from .obfuscation import xor_decode, xor_encode
from .types import StudentProfile

log = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class MemoryBackend:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class FileBackend:
    """One ``<key>.json`` file per key under ``root``; writes are atomic."""

    _LOCK = threading.Lock()

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            log.warning("could not read %s: %s", path, exc)
            return None

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._LOCK:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)

    def remove_item(self, key: str) -> None:
        with self._LOCK:
            self._path(key).unlink(missing_ok=True)


def storage_key(app_id: str, version: Optional[str] = None) -> str:
    return f"{app_id}_{version or config.DEFAULT_VERSION}_DATA"


def _default_document() -> Dict[str, Any]:
    return {"answers": {}}


def _parse_document(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        doc = json.loads(raw)
    except ValueError:
        return None
    return doc if isinstance(doc, dict) else None


class AnswerStore:
    def __init__(self, backend: KeyValueBackend):
        self.backend = backend
        self.key: Optional[str] = None
        self.data: Dict[str, Any] = _default_document()

    # -- lifecycle -------------------------------------------------------
    def initialize(self, app_id: str, version: Optional[str] = None) -> Dict[str, Any]:
        self.key = storage_key(app_id, version)
        self._migrate_legacy()
        self.data = self.load()
        return self.data

    def _migrate_legacy(self) -> None:
        legacy_key = config.LEGACY_STORAGE_KEY
        legacy = self.backend.get_item(legacy_key)
        if legacy is None or self.backend.get_item(self.key) is not None:
            return
        doc = _parse_document(legacy)
        if doc is None:
            log.warning("discarding unreadable legacy record %s", legacy_key)
        else:
            self.backend.set_item(self.key, json.dumps(doc))
            log.info("migrated legacy record %s -> %s", legacy_key, self.key)
        self.backend.remove_item(legacy_key)

    def load(self) -> Dict[str, Any]:
        if self.key is None:
            raise RuntimeError("AnswerStore.initialize() must run before load()")
        raw = self.backend.get_item(self.key)
        doc = _parse_document(raw)
        if doc is None:
            if raw is not None:
                log.warning("stored document under %s is corrupt; starting fresh", self.key)
            return _default_document()
        if not isinstance(doc.get("answers"), dict):
            doc["answers"] = {}
        return doc

    def save(self, document: Optional[Dict[str, Any]] = None) -> None:
        if self.key is None:
            raise RuntimeError("AnswerStore.initialize() must run before save()")
        if document is not None:
            if self.data.get("idLocked"):
                document = dict(document)
                if document.get("id") != self.data.get("id") or not document.get("idLocked"):
                    log.info("keeping locked student id %r on save", self.data.get("id"))
                document["id"] = self.data.get("id")
                document["idLocked"] = True
            self.data = document
        self.backend.set_item(self.key, json.dumps(self.data))

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self.data)

    # -- answers ---------------------------------------------------------
    def set_answer(self, assessment_id: str, question_id: str, plaintext: str) -> None:
        per = self.data["answers"].setdefault(assessment_id, {})
        if not isinstance(per, dict):
            per = self.data["answers"][assessment_id] = {}
        per[question_id] = xor_encode(plaintext or "")
        self.save()

    def get_answer(self, assessment_id: str, question_id: str) -> str:
        per = self.data["answers"].get(assessment_id)
        if not isinstance(per, dict):
            return ""
        return xor_decode(per.get(question_id))

    def has_answer(self, assessment_id: str, question_id: str) -> bool:
        per = self.data["answers"].get(assessment_id)
        return isinstance(per, dict) and question_id in per

    def answers_for(self, assessment_id: str) -> Dict[str, str]:
        per = self.data["answers"].get(assessment_id)
        if not isinstance(per, dict):
            return {}
        return {qid: xor_decode(enc) for qid, enc in per.items()}

    # -- identity --------------------------------------------------------
    def profile(self) -> StudentProfile:
        return StudentProfile(
            name=str(self.data.get("name") or ""),
            id=str(self.data.get("id") or ""),
            teacher=str(self.data.get("teacher") or ""),
            id_locked=bool(self.data.get("idLocked")),
        )

    def save_profile(self, name: str, student_id: str, teacher: str) -> StudentProfile:
        current = self.profile()
        if current.id_locked and student_id != current.id:
            log.info("ignoring student id change: %r is locked to this device", current.id)
            student_id = current.id
        self.data["name"] = name
        self.data["id"] = student_id
        self.data["teacher"] = teacher
        self.save()
        return self.profile()

    def lock_id(self) -> bool:
        """Latch the stored id; returns True only on the call that locks it."""
        if self.data.get("idLocked") or not self.data.get("id"):
            return False
        self.data["idLocked"] = True
        self.save()
        log.info("student id %r locked for this device", self.data["id"])
        return True

    # -- deadline bookkeeping -------------------------------------------
    def first_seen(self, now: datetime) -> datetime:
        info = self.data.get("deadlineInfo")
        if not isinstance(info, dict):
            info = self.data["deadlineInfo"] = {}
        stamp = info.get("firstSeen")
        if isinstance(stamp, str):
            try:
                return datetime.fromisoformat(stamp.replace("Z", "+00:00"))
            except ValueError:
                log.warning("unreadable firstSeen %r; resetting", stamp)
        info["firstSeen"] = now.isoformat()
        self.save()
        return now
