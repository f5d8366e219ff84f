"""Pairwise page matching by exact pixel equality."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

import numpy as np

from .core.types import Dissimilar, PageSimilarity, Raster, Similar, similarity_rank

logger = logging.getLogger(__name__)


def row_hits(a: Raster, b: Raster) -> np.ndarray:
    """Return, for every row, how many pixel positions differ between ``a`` and ``b``.

    Both rasters must have the same dimensions. A pixel differs when any of
    its RGB channels differs; there is no tolerance.
    """

    if a.size != b.size:
        raise ValueError(f"Raster sizes differ: {a.size} vs {b.size}")
    return np.any(a.pixels != b.pixels, axis=2).sum(axis=1)


def differing_pixel_count(a: Raster, b: Raster) -> Optional[int]:
    """Number of differing pixels, or ``None`` when the sizes do not match."""

    if a.size != b.size:
        return None
    # per-row partial counts, summed once
    return int(row_hits(a, b).sum())


def best_match(raster: Raster, baseline: Sequence[Raster]) -> PageSimilarity:
    """Select the baseline page closest to ``raster``.

    Pages of a different size are never paired. Among the rest the lowest
    differing pixel count wins, ties going to the first baseline page.
    """

    candidates: List[PageSimilarity] = []
    for index, other in enumerate(baseline):
        count = differing_pixel_count(raster, other)
        if count is None:
            continue
        candidates.append(Similar(index, count))
        if count == 0:
            # nothing later can beat an exact match at a lower index
            break
    return min(candidates, key=similarity_rank, default=Dissimilar())


def match_pages(
    current: Sequence[Raster],
    baseline: Sequence[Raster],
    *,
    workers: int = 1,
) -> List[PageSimilarity]:
    """Return one :class:`PageSimilarity` per page of ``current``, in order.

    Baseline pages without a current counterpart have no effect. With more
    than one worker the current pages are scored on a thread pool.
    """

    if workers <= 1 or len(current) < 2:
        result = [best_match(raster, baseline) for raster in current]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            result = list(executor.map(lambda raster: best_match(raster, baseline), current))
    logger.debug(
        "Matched %d page(s) against %d baseline page(s): %s",
        len(current),
        len(baseline),
        result,
    )
    return result
