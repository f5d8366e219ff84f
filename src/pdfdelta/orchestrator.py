"""One scan → compare → annotate → promote pass over a tracked location."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

from .annotate import mark_differences
from .compare import compare_pdfs
from .core.types import DiffOutcome, TrackedLocation, is_unchanged
from .engine import PdfEngine
from .errors import CommitError, LoadError, PdfDeltaError
from .scan import find_updated_files

logger = logging.getLogger(__name__)

DIFF_MARKER = "diff"


def diff_file_name(source_name: str, timestamp: int) -> str:
    return f"{source_name}.{DIFF_MARKER}.{timestamp}.pdf"


def snapshot_current(current_pdf: Path, workdir: Path) -> Tuple[Path, int]:
    """Copy ``current_pdf`` into ``workdir`` and return the copy and its source mtime.

    The modification time is read before copying, so a revision saved while
    the pass runs is always newer than what gets promoted.
    """

    try:
        mtime_ns = os.stat(current_pdf).st_mtime_ns
        snapshot = workdir / current_pdf.name
        shutil.copyfile(current_pdf, snapshot)
    except OSError as exc:
        raise LoadError(f"Unable to read {current_pdf}: {exc}") from exc
    return snapshot, mtime_ns


def promote_baseline(snapshot_pdf: Path, baseline_pdf: Path, mtime_ns: int) -> None:
    """Copy ``snapshot_pdf`` over ``baseline_pdf`` and stamp it with ``mtime_ns``.

    Stamping the baseline with the modification time of the compared revision
    makes the next scan see both files as equally old, so an unchanged file
    is not picked up again.
    """

    try:
        baseline_pdf.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(snapshot_pdf, baseline_pdf)
        os.utime(baseline_pdf, ns=(mtime_ns, mtime_ns))
    except OSError as exc:
        raise CommitError(f"Unable to promote {snapshot_pdf} to {baseline_pdf}: {exc}") from exc


class DiffOrchestrator:
    """Runs the change-detection pipeline for a single :class:`TrackedLocation`."""

    def __init__(
        self,
        engine: PdfEngine,
        current_dir: str | Path,
        baseline_dir: str | Path,
        output_dir: str | Path,
    ) -> None:
        self.engine = engine
        self.location = TrackedLocation(Path(current_dir), Path(baseline_dir), Path(output_dir))

    @classmethod
    def for_location(cls, engine: PdfEngine, location: TrackedLocation) -> "DiffOrchestrator":
        return cls(engine, location.current_dir, location.baseline_dir, location.output_dir)

    def run(self) -> Dict[Path, DiffOutcome]:
        """Process every new or updated file once.

        A failing scan raises :class:`~pdfdelta.errors.ScanError`. Any other
        failure is recorded on the outcome of the file it belongs to and does
        not stop the remaining files.
        """

        candidates = find_updated_files(self.location.current_dir, self.location.baseline_dir)
        associations = {c.current_file_path: c.baseline_file_path for c in candidates}
        if associations:
            logger.info("%d changed file(s) in %s", len(associations), self.location.current_dir)

        results: Dict[Path, DiffOutcome] = {}
        for current_path, baseline_path in associations.items():
            results[current_path] = self._process(current_path, baseline_path)
        return results

    def output_path_for(self, current_pdf: Path, now: Optional[int] = None) -> Path:
        """Return a free ``<name>.diff.<unix_seconds>.pdf`` path in the output dir."""

        timestamp = int(time.time()) if now is None else now
        candidate = self.location.output_dir / diff_file_name(current_pdf.name, timestamp)
        while candidate.exists():
            timestamp += 1
            candidate = self.location.output_dir / diff_file_name(current_pdf.name, timestamp)
        return candidate

    def _process(self, current_path: Path, baseline_path: Path) -> DiffOutcome:
        outcome = DiffOutcome(current_path=current_path)
        with tempfile.TemporaryDirectory(prefix="pdfdelta-") as workdir:
            try:
                snapshot, mtime_ns = snapshot_current(current_path, Path(workdir))
            except LoadError as exc:
                outcome.stage = "load"
                return self._failed(outcome, exc)
            return self._process_snapshot(outcome, snapshot, mtime_ns, baseline_path)

    def _process_snapshot(
        self,
        outcome: DiffOutcome,
        snapshot: Path,
        mtime_ns: int,
        baseline_path: Path,
    ) -> DiffOutcome:
        current_path = outcome.current_path
        try:
            comparisons = compare_pdfs(self.engine, snapshot, baseline_path)
        except Exception as exc:
            outcome.stage = "load" if isinstance(exc, LoadError) else "render"
            return self._failed(outcome, exc)

        if is_unchanged(comparisons):
            logger.info("%s is visually unchanged; no diff written", current_path)
        else:
            try:
                self.location.output_dir.mkdir(parents=True, exist_ok=True)
                annotated = mark_differences(
                    self.engine,
                    snapshot,
                    comparisons,
                    self.output_path_for(current_path),
                )
            except Exception as exc:
                outcome.stage = "annotate"
                return self._failed(outcome, exc)
            outcome.output_path = annotated.path
            outcome.dropped_pages = annotated.dropped_pages

        try:
            promote_baseline(snapshot, baseline_path, mtime_ns)
        except CommitError as exc:
            outcome.stage = "commit"
            return self._failed(outcome, exc)
        return outcome

    @staticmethod
    def _failed(outcome: DiffOutcome, exc: Exception) -> DiffOutcome:
        if isinstance(exc, PdfDeltaError):
            logger.error("Failed to %s %s: %s", outcome.stage, outcome.current_path, exc)
        else:
            logger.exception("Unexpected failure (%s) for %s", outcome.stage, outcome.current_path)
        outcome.error = exc
        return outcome
