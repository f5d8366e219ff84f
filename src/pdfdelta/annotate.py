"""Rewrite a PDF so that only changed pages remain, each with a margin marker."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Sequence, Tuple

import fitz  # PyMuPDF
import numpy as np

from .core.types import AnnotatedOutput, Changed, Identical, PageComparison, Segment
from .engine import PdfEngine, RenderSettings
from .errors import ModifyError, SaveError

logger = logging.getLogger(__name__)

MARKER_RGBA = (255, 0, 0, 255)
PARTIAL_SUFFIX = ".part"


def overlay_size(page_rect: fitz.Rect, scale: int) -> Tuple[int, int]:
    """Pixel size of the super-sampled overlay for a page."""

    return max(1, int(round(page_rect.width * scale))), max(1, int(round(page_rect.height * scale)))


def build_overlay(width: int, height: int, segments: Sequence[Segment], marker_width_px: int) -> np.ndarray:
    """Return an RGBA image, transparent except for the red margin band.

    Row ``y`` is marked when ``y / (height - 1)`` lies inside any segment;
    the band is at most ``marker_width_px`` wide and clipped to ``width``.
    """

    overlay = np.zeros((height, width, 4), dtype=np.uint8)
    if height > 1:
        positions = np.arange(height, dtype=np.float64) / (height - 1)
    else:
        positions = np.zeros(height, dtype=np.float64)
    rows = np.zeros(height, dtype=bool)
    for start, end in segments:
        rows |= (positions >= start) & (positions <= end)
    overlay[rows, : min(marker_width_px, width)] = MARKER_RGBA
    return overlay


def _overlay_pixmap(page: fitz.Page, segments: Sequence[Segment], settings: RenderSettings) -> fitz.Pixmap:
    width, height = overlay_size(page.rect, settings.overlay_scale)
    overlay = build_overlay(width, height, segments, settings.marker_width_px)
    return fitz.Pixmap(fitz.csRGB, width, height, overlay.tobytes(), True)


def apply_comparisons(
    doc: fitz.Document,
    comparisons: Sequence[PageComparison],
    settings: RenderSettings,
) -> List[int]:
    """Delete identical pages and mark changed ones, in place.

    ``shift`` tracks how many pages were deleted so far, so that
    ``index + shift`` is always the current position of original page
    ``index``. Returns the original indices of the dropped pages.
    """

    if len(comparisons) != doc.page_count:
        raise ModifyError(
            f"Got {len(comparisons)} comparison(s) for a document with {doc.page_count} page(s)"
        )

    dropped: List[int] = []
    shift = 0
    for index, comparison in enumerate(comparisons):
        position = index + shift
        if isinstance(comparison, Identical):
            try:
                doc.delete_page(position)
            except Exception as exc:
                raise ModifyError(f"Unable to delete page {index}: {exc}") from exc
            dropped.append(index)
            shift -= 1
        elif isinstance(comparison, Changed):
            try:
                page = doc[position]
                pixmap = _overlay_pixmap(page, comparison.segments, settings)
                page.insert_image(page.rect, pixmap=pixmap, keep_proportion=False, overlay=True)
            except Exception as exc:
                raise ModifyError(f"Unable to mark page {index}: {exc}") from exc
        else:
            raise ModifyError(f"Unknown comparison for page {index}: {comparison!r}")
    return dropped


def save_atomically(doc: fitz.Document, output_pdf: Path) -> None:
    """Write ``doc`` next to ``output_pdf`` and rename it into place once durable."""

    partial = output_pdf.with_name(output_pdf.name + PARTIAL_SUFFIX)
    try:
        doc.save(str(partial), garbage=3, deflate=True)
        with open(partial, "rb+") as handle:
            os.fsync(handle.fileno())
        os.replace(partial, output_pdf)
    except Exception as exc:
        try:
            partial.unlink()
        except FileNotFoundError:
            pass
        raise SaveError(f"Unable to save {output_pdf}: {exc}") from exc


def mark_differences(
    engine: PdfEngine,
    source_pdf: str | Path,
    comparisons: Sequence[PageComparison],
    output_pdf: str | Path,
) -> AnnotatedOutput:
    """Write the annotated copy of ``source_pdf`` to ``output_pdf``.

    ``comparisons`` holds one entry per page of ``source_pdf``. Raises
    :class:`~pdfdelta.errors.LoadError`, :class:`ModifyError` or
    :class:`SaveError`; nothing is left at ``output_pdf`` on failure.
    """

    output_path = Path(output_pdf)
    doc = engine.open_document(source_pdf)
    try:
        dropped = apply_comparisons(doc, comparisons, engine.settings)
        if doc.page_count == 0:
            raise SaveError(f"Nothing changed in {source_pdf}; refusing to write an empty PDF")
        save_atomically(doc, output_path)
    finally:
        doc.close()

    logger.info(
        "Diff of %s saved to %s (%d page(s) dropped)",
        source_pdf,
        output_path,
        len(dropped),
    )
    return AnnotatedOutput(path=output_path, dropped_pages=tuple(dropped))
