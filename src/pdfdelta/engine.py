"""Shared PyMuPDF handle.

One :class:`PdfEngine` is built per process and handed to every component
that rasterizes or rewrites documents. It only carries read-only settings;
documents opened through it are owned by the caller and must be closed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import fitz  # PyMuPDF

from .errors import LoadError

logger = logging.getLogger(__name__)

MIN_PYMUPDF_VERSION = (1, 22)


def _pymupdf_version() -> tuple[int, ...]:
    version_str = getattr(fitz, "VersionBind", None) or getattr(fitz, "__version__", "0")
    parts = []
    for part in str(version_str).split(".")[:2]:
        try:
            parts.append(int(part))
        except ValueError:
            parts.append(0)
    return tuple(parts)


@dataclass(frozen=True)
class RenderSettings:
    """Parameters driving rasterization and overlay generation."""

    target_width: int = 500
    max_height: int = 10000
    rotate_landscape: bool = True
    overlay_scale: int = 5
    marker_width_px: int = 10
    render_workers: int = 1
    match_workers: int = 1

    def __post_init__(self) -> None:
        if self.target_width <= 0 or self.max_height <= 0:
            raise ValueError("Render width and height cap must be positive")
        if self.overlay_scale <= 0 or self.marker_width_px <= 0:
            raise ValueError("Overlay scale and marker width must be positive")
        if self.render_workers <= 0 or self.match_workers <= 0:
            raise ValueError("Worker counts must be positive")

    def to_dict(self) -> Dict[str, object]:
        return {
            "target_width": self.target_width,
            "max_height": self.max_height,
            "rotate_landscape": self.rotate_landscape,
            "overlay_scale": self.overlay_scale,
            "marker_width_px": self.marker_width_px,
            "render_workers": self.render_workers,
            "match_workers": self.match_workers,
        }


def default_worker_count() -> int:
    return max(1, os.cpu_count() or 1)


class PdfEngine:
    """Process-wide entry point to PyMuPDF."""

    def __init__(self, settings: RenderSettings | None = None) -> None:
        version = _pymupdf_version()
        if version < MIN_PYMUPDF_VERSION:
            raise RuntimeError("PyMuPDF >=1.22 required")
        self.settings = settings or RenderSettings()
        logger.debug("PDF engine ready (PyMuPDF %s, %s)", version, self.settings.to_dict())

    def open_document(self, path: str | Path) -> fitz.Document:
        """Open ``path`` as a PDF, raising :class:`LoadError` on failure."""

        try:
            doc = fitz.open(str(path), filetype="pdf")
        except Exception as exc:
            raise LoadError(f"Unable to load PDF {path}: {exc}") from exc
        if doc.page_count == 0:
            doc.close()
            raise LoadError(f"PDF {path} has no pages")
        return doc

    def page_count(self, path: str | Path) -> int:
        doc = self.open_document(path)
        try:
            return doc.page_count
        finally:
            doc.close()
