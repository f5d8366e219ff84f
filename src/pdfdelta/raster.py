"""Page rasterization at a deterministic, comparable scale.

Pages are rendered to RGB at a fixed target width. Landscape pages are
rotated by 90 degrees first so that documents with the same nominal page
size always produce rasters of the same dimensions. Rendering of a document
is spread over a process pool because PyMuPDF must not be shared between
threads; every worker opens its own copy of the document.
"""

from __future__ import annotations

import logging
import multiprocessing
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import List, Sequence

import fitz  # PyMuPDF
import numpy as np

from .core.types import Raster
from .engine import PdfEngine, RenderSettings
from .errors import LoadError, RenderError

logger = logging.getLogger(__name__)


def render_matrix(page: fitz.Page, settings: RenderSettings) -> fitz.Matrix:
    """Return the scaling (and rotation) matrix used to render ``page``."""

    width, height = page.rect.width, page.rect.height
    if width <= 0 or height <= 0:
        raise RenderError(f"Invalid page dimensions: {width}x{height}")
    landscape = settings.rotate_landscape and width > height
    if landscape:
        width, height = height, width
    scale = settings.target_width / width
    if height * scale > settings.max_height:
        scale = settings.max_height / height
    matrix = fitz.Matrix(scale, scale)
    if landscape:
        matrix = matrix.prerotate(90)
    return matrix


def render_page(page: fitz.Page, settings: RenderSettings) -> Raster:
    try:
        matrix = render_matrix(page, settings)
        pix = page.get_pixmap(matrix=matrix, colorspace=fitz.csRGB, alpha=False)
    except RenderError:
        raise
    except Exception as exc:
        raise RenderError(f"Unable to render page {page.number}: {exc}") from exc
    pixels = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
    return Raster(pixels[:, :, :3])


def render_pages(doc: fitz.Document, settings: RenderSettings, page_numbers: Sequence[int]) -> List[Raster]:
    return [render_page(doc[number], settings) for number in page_numbers]


def _render_chunk(path: str, page_numbers: List[int], settings: RenderSettings) -> List[np.ndarray]:
    """Process pool worker; returns bare arrays so results pickle cheaply."""

    try:
        doc = fitz.open(path, filetype="pdf")
    except Exception as exc:
        raise LoadError(f"Unable to load PDF {path}: {exc}") from exc
    try:
        return [raster.pixels for raster in render_pages(doc, settings, page_numbers)]
    finally:
        doc.close()


def _chunks(page_count: int, workers: int) -> List[List[int]]:
    return [chunk.tolist() for chunk in np.array_split(np.arange(page_count), workers) if chunk.size]


def render_document(engine: PdfEngine, path: str | Path) -> List[Raster]:
    """Render every page of ``path`` in document order.

    Raises :class:`LoadError` when the file cannot be opened and
    :class:`RenderError` as soon as any page fails; no partial result is
    returned in either case.
    """

    settings = engine.settings
    doc = engine.open_document(path)
    try:
        page_count = doc.page_count
        workers = min(settings.render_workers, page_count)
        if workers <= 1:
            rasters = render_pages(doc, settings, range(page_count))
            logger.debug("Rendered %d page(s) of %s", page_count, path)
            return rasters
    finally:
        doc.close()

    context = multiprocessing.get_context("spawn")
    chunks = _chunks(page_count, workers)
    with ProcessPoolExecutor(max_workers=workers, mp_context=context) as executor:
        futures = [executor.submit(_render_chunk, str(path), chunk, settings) for chunk in chunks]
        rasters: List[Raster] = []
        try:
            for future in futures:
                rasters.extend(Raster(pixels) for pixels in future.result())
        except Exception:
            for future in futures:
                future.cancel()
            raise
    logger.debug("Rendered %d page(s) of %s with %d workers", page_count, path, workers)
    return rasters
