"""Run-length encoding of differing rows into fractional page ranges."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .core.types import (
    WHOLE_PAGE,
    Changed,
    Dissimilar,
    Identical,
    PageComparison,
    PageSimilarity,
    Raster,
    Segment,
)
from .matching import row_hits


def encode_rows(hits: Sequence[bool]) -> Tuple[Segment, ...]:
    """Collapse a per-row hit signal into maximal contiguous segments.

    Row ``r`` of ``n`` sits at ``r / (n - 1)`` of the page height, so a run
    touching the last row ends at exactly ``1.0``. A single-row signal maps
    to the whole page.
    """

    rows = len(hits)
    if rows == 1:
        return WHOLE_PAGE if hits[0] else ()

    segments: List[Segment] = []
    open_segment: Optional[List[float]] = None
    for row, hit in enumerate(hits):
        position = row / (rows - 1)
        if hit:
            if open_segment is None:
                open_segment = [position, position]
            else:
                open_segment[1] = position
        elif open_segment is not None:
            segments.append((open_segment[0], open_segment[1]))
            open_segment = None
    if open_segment is not None:
        segments.append((open_segment[0], open_segment[1]))
    return tuple(segments)


def encode_page(
    similarity: PageSimilarity,
    raster: Raster,
    baseline: Sequence[Raster],
) -> PageComparison:
    """Turn the best match of ``raster`` into a :data:`PageComparison`."""

    if isinstance(similarity, Dissimilar):
        return Changed(WHOLE_PAGE)
    if similarity.differing_pixel_count == 0:
        return Identical()

    matched = baseline[similarity.matched_page_index]
    hits = row_hits(raster, matched) > 0
    segments = encode_rows(hits.tolist())
    if not segments:
        return Identical()
    return Changed(segments)


def encode_pages(
    similarities: Sequence[PageSimilarity],
    current: Sequence[Raster],
    baseline: Sequence[Raster],
) -> List[PageComparison]:
    if len(similarities) != len(current):
        raise ValueError("Expected one similarity per current page")
    return [
        encode_page(similarity, raster, baseline)
        for similarity, raster in zip(similarities, current)
    ]
