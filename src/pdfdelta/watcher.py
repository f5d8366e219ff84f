"""Polling boundary: one pass over every tracked location per call."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .config import AppConfig
from .core.types import DiffOutcome
from .engine import PdfEngine
from .errors import ScanError
from .orchestrator import DiffOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = timedelta(minutes=1)

ErrorReporter = Callable[[str], None]


class DocumentWatcher:
    """Drives the orchestrators of all locations.

    The watcher never sleeps; :meth:`request_loop` performs a single pass
    and returns the delay after which the host should call it again.
    """

    def __init__(
        self,
        orchestrators: Sequence[DiffOrchestrator],
        *,
        poll_interval: timedelta = DEFAULT_POLL_INTERVAL,
        report_error: Optional[ErrorReporter] = None,
    ) -> None:
        self.orchestrators: List[DiffOrchestrator] = list(orchestrators)
        self.poll_interval = poll_interval
        self._report_error = report_error or logger.error
        self.last_results: Dict[Path, DiffOutcome] = {}

    @classmethod
    def from_config(cls, config: AppConfig, report_error: Optional[ErrorReporter] = None) -> "DocumentWatcher":
        engine = PdfEngine(config.render)
        orchestrators = [DiffOrchestrator.for_location(engine, location) for location in config.locations]
        return cls(orchestrators, poll_interval=config.poll_interval, report_error=report_error)

    @property
    def output_dirs(self) -> List[Path]:
        return [orchestrator.location.output_dir for orchestrator in self.orchestrators]

    def request_loop(self) -> timedelta:
        results: Dict[Path, DiffOutcome] = {}
        for orchestrator in self.orchestrators:
            try:
                outcomes = orchestrator.run()
            except ScanError as exc:
                self._report_error(f"Unable to initialize document scan: {exc}")
                continue
            for path, outcome in outcomes.items():
                if not outcome.ok:
                    self._report_error(f"Was unable to update document: {path}. {outcome.error}")
            results.update(outcomes)
        self.last_results = results
        written = sum(1 for outcome in results.values() if outcome.ok and outcome.output_path)
        logger.info("Pass finished: %d file(s) processed, %d diff(s) written", len(results), written)
        return self.poll_interval
