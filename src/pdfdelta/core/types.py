from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Sequence, Tuple, Union

import numpy as np

Segment = Tuple[float, float]
Stage = Literal["scan", "load", "render", "annotate", "commit"]


@dataclass(frozen=True)
class TrackedLocation:
    """Directory triple watched by one orchestrator."""

    current_dir: Path
    baseline_dir: Path
    output_dir: Path


@dataclass(frozen=True)
class ChangeCandidate:
    current_file_path: Path
    baseline_file_path: Path  # may not exist yet


@dataclass(frozen=True)
class Raster:
    """Rendered RGB page, ``pixels`` has shape ``(height, width, 3)``."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 3:
            raise ValueError(f"Raster expects an RGB array, got shape {self.pixels.shape}")
        self.pixels.flags.writeable = False

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class Similar:
    matched_page_index: int
    differing_pixel_count: int


@dataclass(frozen=True)
class Dissimilar:
    """No baseline page could be paired with the current page."""


PageSimilarity = Union[Similar, Dissimilar]


def similarity_rank(similarity: PageSimilarity) -> Tuple[int, int, int]:
    """Sort key for best-match selection; smaller ranks win.

    Any :class:`Similar` outranks :class:`Dissimilar`, fewer differing
    pixels win, and ties go to the lowest baseline page index.
    """

    if isinstance(similarity, Similar):
        return 0, similarity.differing_pixel_count, similarity.matched_page_index
    return 1, 0, 0


@dataclass(frozen=True)
class Identical:
    pass


@dataclass(frozen=True)
class Changed:
    """Page with visual differences, as fractional row ranges of the page height."""

    segments: Tuple[Segment, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("A changed page needs at least one segment")
        previous_end = -1.0
        for start, end in self.segments:
            if not 0.0 <= start <= end <= 1.0:
                raise ValueError(f"Invalid segment ({start}, {end})")
            if start <= previous_end:
                raise ValueError("Segments must be ascending and non-overlapping")
            previous_end = end


PageComparison = Union[Identical, Changed]

WHOLE_PAGE: Tuple[Segment, ...] = ((0.0, 1.0),)


def is_unchanged(comparisons: Sequence[PageComparison]) -> bool:
    return all(isinstance(comparison, Identical) for comparison in comparisons)


@dataclass(frozen=True)
class AnnotatedOutput:
    path: Path
    dropped_pages: Tuple[int, ...] = ()


@dataclass
class DiffOutcome:
    """Result of one candidate in an orchestration pass.

    ``output_path`` is ``None`` when the document was visually unchanged;
    ``error`` is set when any stage failed for this file.
    """

    current_path: Path
    output_path: Optional[Path] = None
    error: Optional[Exception] = None
    stage: Optional[Stage] = None
    dropped_pages: Tuple[int, ...] = field(default=())

    @property
    def ok(self) -> bool:
        return self.error is None
