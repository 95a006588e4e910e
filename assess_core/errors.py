from __future__ import annotations


class AssessmentError(Exception):
    """Base class for errors surfaced to the student."""


class CatalogError(AssessmentError):
    """Raised when the question bank cannot be loaded or compiled."""


class ValidationError(AssessmentError):
    """Missing or unknown input; the session state is left unchanged."""


class LockedError(AssessmentError):
    """Raised when a field is changed after the deadline lock engaged."""


class ExportBlocked(AssessmentError):
    """The export gate is closed (score too low or deadline passed)."""

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class ExportError(AssessmentError):
    """Both the render/share path and the download fallback failed."""
