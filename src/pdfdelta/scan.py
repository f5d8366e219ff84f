"""Recursive comparison of a current directory tree against its baseline."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import List, Optional

from .core.types import ChangeCandidate
from .errors import ScanError

logger = logging.getLogger(__name__)


def find_updated_files(current_dir: str | Path, baseline_dir: str | Path) -> List[ChangeCandidate]:
    """Return the files of ``current_dir`` that are new or newer than their baseline.

    Every entry of ``current_dir`` is matched with the entry of the same
    relative name below ``baseline_dir``:

    * file vs. baseline file: candidate when the current modification time is
      strictly newer;
    * file vs. missing baseline: candidate (new file);
    * file vs. baseline directory: always a candidate, the directory is left
      untouched;
    * directory vs. anything: recurse, a missing baseline directory simply
      turns every descendant file into a candidate.

    A missing baseline entry is never an error. Any other ``OSError`` aborts
    the whole scan with :class:`ScanError`. The order of the result is not
    significant.
    """

    result: List[ChangeCandidate] = []
    _scan_directory(Path(current_dir), Path(baseline_dir), result)
    logger.debug("Scan of %s found %d candidate(s)", current_dir, len(result))
    return result


def _baseline_stat(path: Path) -> Optional[os.stat_result]:
    try:
        return os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        # a baseline below a regular file cannot exist either
        return None
    except OSError as exc:
        raise ScanError(f"Unable to read baseline entry {path}: {exc}") from exc


def _scan_directory(current_dir: Path, baseline_dir: Path, result: List[ChangeCandidate]) -> None:
    try:
        with os.scandir(current_dir) as it:
            entries = list(it)
    except OSError as exc:
        raise ScanError(f"Unable to list directory {current_dir}: {exc}") from exc

    for entry in entries:
        current_path = Path(entry.path)
        baseline_path = baseline_dir / entry.name
        try:
            is_dir = entry.is_dir()
        except OSError as exc:
            raise ScanError(f"Unable to read entry {current_path}: {exc}") from exc

        baseline = _baseline_stat(baseline_path)

        if is_dir:
            _scan_directory(current_path, baseline_path, result)
            continue

        if baseline is None:
            logger.debug("New file %s", current_path)
            result.append(ChangeCandidate(current_path, baseline_path))
        elif stat.S_ISDIR(baseline.st_mode):
            logger.warning(
                "Baseline for %s is a directory (%s); treating file as changed",
                current_path,
                baseline_path,
            )
            result.append(ChangeCandidate(current_path, baseline_path))
        else:
            try:
                current_mtime = entry.stat().st_mtime_ns
            except FileNotFoundError:
                # vanished since listing, or a dangling symlink
                logger.debug("Skipping %s: no longer readable", current_path)
                continue
            except OSError as exc:
                raise ScanError(f"Unable to stat {current_path}: {exc}") from exc
            if current_mtime > baseline.st_mtime_ns:
                logger.debug("Updated file %s", current_path)
                result.append(ChangeCandidate(current_path, baseline_path))
