"""Visual change detection for watched PDF folders."""

from __future__ import annotations

from .annotate import mark_differences
from .compare import compare_pdfs
from .core.types import (
    AnnotatedOutput,
    Changed,
    ChangeCandidate,
    DiffOutcome,
    Dissimilar,
    Identical,
    Raster,
    Similar,
    TrackedLocation,
)
from .engine import PdfEngine, RenderSettings
from .orchestrator import DiffOrchestrator
from .scan import find_updated_files

__all__ = [
    "compare_pdfs",
    "find_updated_files",
    "mark_differences",
    "DiffOrchestrator",
    "PdfEngine",
    "RenderSettings",
    "AnnotatedOutput",
    "Changed",
    "ChangeCandidate",
    "DiffOutcome",
    "Dissimilar",
    "Identical",
    "Raster",
    "Similar",
    "TrackedLocation",
]

__version__ = "0.1.0"
