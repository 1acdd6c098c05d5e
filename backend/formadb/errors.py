# backend/formadb/errors.py
"""
Error taxonomy shared by the document and signature apps.

- NormalizationAmbiguity never leaves the normalizer.
- RenderFailure is the only error a document render surfaces.
- RecordMappingFailure and StoreFailure become report entries inside batches.
"""

from __future__ import annotations

from dataclasses import dataclass

RENDER_FAILURE_MESSAGE = "La génération du PDF a échoué, veuillez réessayer."


class NormalizationAmbiguity(ValueError):
    """Stored training field has a shape the normalizer cannot interpret."""


class RenderFailure(RuntimeError):
    """Rasterization or PDF assembly failed; no partial document exists."""

    def __init__(self, message: str = RENDER_FAILURE_MESSAGE):
        super().__init__(message)
        self.user_message = message


class RenderDependencyError(RuntimeError):
    """Optional rendering dependency (browser, reportlab) is unavailable."""


@dataclass
class RecordMappingFailure(Exception):
    record_id: str
    reason: str

    def __str__(self) -> str:
        return f"{self.record_id}: {self.reason}"


class StoreFailure(RuntimeError):
    """The record store or asset store rejected a read or write."""
