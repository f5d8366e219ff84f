"""Listing of generated diff files as timestamped events."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from .annotate import PARTIAL_SUFFIX
from .errors import EventParseError, EventQueryError
from .orchestrator import DIFF_MARKER

_SECONDS_RE = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class DiffEvent:
    path: Path
    title: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "title": self.title,
            "timestamp": self.timestamp.isoformat(),
        }


def parse_diff_file_name(path: str | Path) -> DiffEvent:
    """Parse ``<name>.diff.<unix_seconds>.pdf`` into a :class:`DiffEvent`.

    The timestamp is the second-to-last dot separated field of the file
    name; the title is the source document name in front of it.
    """

    path = Path(path)
    parts = path.name.split(".")
    if len(parts) < 2:
        raise EventParseError(f"Unable to parse filename {path.name!r}: filename is too short")
    raw = parts[-2]
    if not _SECONDS_RE.fullmatch(raw):
        raise EventParseError(
            f"Unable to parse filename {path.name!r}: not a valid number inside filename: {raw!r}"
        )
    seconds = int(raw)
    try:
        timestamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise EventParseError(f"Unable to parse filename {path.name!r}: bad timestamp {seconds}") from exc

    head = parts[:-2]
    if head and head[-1] == DIFF_MARKER:
        head = head[:-1]
    return DiffEvent(path=path, title=".".join(head), timestamp=timestamp)


def _list_directory(directory: Path) -> List[Path]:
    try:
        with os.scandir(directory) as it:
            return [Path(entry.path) for entry in it]
    except FileNotFoundError:
        # nothing has been written to this location yet
        return []
    except OSError as exc:
        raise EventQueryError(f"Unable to read diff documents in {directory}: {exc}") from exc


def list_diff_events(
    output_dirs: Iterable[str | Path],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[DiffEvent]:
    """Return the diff files of ``output_dirs`` generated within ``[start, end]``.

    Files still being written (``*.part``) are not published yet and are not
    listed. A missing directory has no events yet. Any other name that does
    not parse raises :class:`EventParseError`. Naive datetimes are taken as
    UTC.
    """

    start = _as_utc(start)
    end = _as_utc(end)
    events: List[DiffEvent] = []
    for directory in output_dirs:
        for path in _list_directory(Path(directory)):
            if path.name.endswith(PARTIAL_SUFFIX):
                continue
            event = parse_diff_file_name(path)
            if start is not None and event.timestamp < start:
                continue
            if end is not None and event.timestamp > end:
                continue
            events.append(event)
    events.sort(key=lambda event: (event.timestamp, str(event.path)))
    return events


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
