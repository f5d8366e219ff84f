"""Visual comparison of a current PDF against its baseline."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List

from .core.types import WHOLE_PAGE, Changed, PageComparison
from .engine import PdfEngine
from .errors import LoadError
from .matching import match_pages
from .raster import render_document
from .segments import encode_pages

logger = logging.getLogger(__name__)


def compare_pdfs(
    engine: PdfEngine,
    current_pdf: str | Path,
    baseline_pdf: str | Path,
) -> List[PageComparison]:
    """Compare every page of ``current_pdf`` with the pages of ``baseline_pdf``.

    The result holds one entry per current page, in page order. A baseline
    that cannot be loaded (missing, unreadable or corrupt) means everything
    changed, so each current page is flagged as a whole. Failing to load the
    current document raises :class:`LoadError`.
    """

    t_start = time.time()
    page_count = engine.page_count(current_pdf)
    try:
        engine.page_count(baseline_pdf)
    except LoadError as exc:
        logger.info("No usable baseline for %s (%s); flagging all pages", current_pdf, exc)
        return [Changed(WHOLE_PAGE) for _ in range(page_count)]

    current = render_document(engine, current_pdf)
    baseline = render_document(engine, baseline_pdf)
    similarities = match_pages(current, baseline, workers=engine.settings.match_workers)
    comparisons = encode_pages(similarities, current, baseline)

    changed = sum(1 for comparison in comparisons if isinstance(comparison, Changed))
    logger.info(
        "Compared %s against %s in %.2fs: %d of %d page(s) changed",
        current_pdf,
        baseline_pdf,
        time.time() - t_start,
        changed,
        len(comparisons),
    )
    return comparisons
