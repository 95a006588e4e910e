"""Export of a finished submission.

Rendering and delivery are capabilities looked up by name. A renderer whose
library is missing reports itself unavailable and the next one is tried; a
share target that declines or fails falls back to a plain download.
"""
from __future__ import annotations

import importlib.util
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from .errors import ExportError
from .types import Catalog, SubmissionSnapshot

log = logging.getLogger(__name__)


class RendererUnavailable(RuntimeError):
    """The library a renderer depends on cannot be loaded."""


class Renderer(Protocol):
    media_type: str
    extension: str

    def render(self, snapshot: SubmissionSnapshot, catalog: Catalog) -> bytes: ...


class Exporter(Protocol):
    def deliver(self, payload: bytes, filename: str, media_type: str) -> bool: ...


def safe_part(value: Optional[str], default: str) -> str:
    cleaned = re.sub(r"\s+", "_", (value or "").strip())
    cleaned = re.sub(r"[^a-zA-Z0-9_\-]", "", cleaned)
    return cleaned or default


def export_filename(snapshot: SubmissionSnapshot, extension: str = "pdf") -> str:
    return (
        f"{safe_part(snapshot.student_id, 'student')}_"
        f"{safe_part(snapshot.student_name, 'name')}_"
        f"{safe_part(snapshot.assessment_title, 'assessment')}.{extension}"
    )


_RENDERERS: Dict[str, Callable[[], Renderer]] = {}


def register_renderer(name: str, factory: Callable[[], Renderer]) -> None:
    _RENDERERS[name] = factory


def resolve_renderer(name: str) -> Optional[Renderer]:
    factory = _RENDERERS.get(name)
    if factory is None:
        return None
    try:
        return factory()
    except RendererUnavailable as exc:
        log.info("renderer %s unavailable: %s", name, exc)
        return None


def renderer_names() -> List[str]:
    return list(_RENDERERS)


def _pdf_factory() -> Renderer:
    if importlib.util.find_spec("reportlab") is None:
        raise RendererUnavailable("reportlab is not installed")
    from .report_pdf import PdfRenderer
    return PdfRenderer()


def _html_factory() -> Renderer:
    from .report_html import HtmlRenderer
    return HtmlRenderer()


register_renderer("pdf", _pdf_factory)
register_renderer("html", _html_factory)


class DownloadExporter:
    """Fallback delivery: write the file into a downloads directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.last_path: Optional[Path] = None

    def deliver(self, payload: bytes, filename: str, media_type: str) -> bool:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(payload)
        self.last_path = path
        log.info("saved %s (%s, %d bytes)", path, media_type, len(payload))
        return True


@dataclass
class ExportReceipt:
    filename: str
    media_type: str
    payload: bytes
    via: str  # "share" | "download"
    path: Optional[Path] = None


def render_snapshot(
    snapshot: SubmissionSnapshot,
    catalog: Catalog,
    preferred: Iterable[str] = ("pdf", "html"),
) -> tuple[bytes, str, str]:
    """Render with the first available renderer; returns (payload, media_type, filename)."""
    errors: List[str] = []
    for name in preferred:
        renderer = resolve_renderer(name)
        if renderer is None:
            continue
        try:
            payload = renderer.render(snapshot, catalog)
        except Exception as exc:
            log.warning("renderer %s failed: %s", name, exc)
            errors.append(f"{name}: {exc}")
            continue
        return payload, renderer.media_type, export_filename(snapshot, renderer.extension)
    raise ExportError("No renderer could produce the document. " + "; ".join(errors))


def deliver(
    payload: bytes,
    filename: str,
    media_type: str,
    share: Optional[Exporter],
    download: DownloadExporter,
) -> ExportReceipt:
    if share is not None:
        try:
            if share.deliver(payload, filename, media_type):
                return ExportReceipt(filename, media_type, payload, via="share")
        except Exception as exc:
            log.warning("share failed, falling back to download: %s", exc)
    try:
        download.deliver(payload, filename, media_type)
    except OSError as exc:
        raise ExportError(f"Could not save {filename}: {exc}") from exc
    return ExportReceipt(filename, media_type, payload, via="download", path=download.last_path)
