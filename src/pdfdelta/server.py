"""HTTP access to diff events and signed diff files."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

from .errors import EventParseError, EventQueryError
from .events import list_diff_events
from .signing import sign_document, verify_path

logger = logging.getLogger(__name__)


def create_app(output_dirs: Sequence[str | Path], private_key: rsa.RSAPrivateKey) -> FastAPI:
    """Build the API serving the diff files found in ``output_dirs``."""

    app = FastAPI(title="pdfdelta")
    dirs = [Path(directory) for directory in output_dirs]
    public_key = private_key.public_key()

    @app.get("/events")
    def get_events(start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Return the diff files generated within ``[start, end]`` with signed paths."""
        try:
            events = list_diff_events(dirs, start, end)
        except (EventParseError, EventQueryError) as exc:
            logger.error("Event query failed: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return [
            {
                "title": event.title,
                "time": event.timestamp.isoformat(),
                "data": sign_document(private_key, event.path).to_dict(),
            }
            for event in events
        ]

    @app.get("/file")
    def get_file(path: str, signature: str) -> FileResponse:
        """Return a diff file when ``signature`` matches ``path``."""
        if not verify_path(public_key, path, signature):
            raise HTTPException(status_code=401, detail="Invalid signature")
        target = Path(path)
        if not target.is_file():
            raise HTTPException(status_code=404, detail="File not found")
        return FileResponse(target, media_type="application/pdf", filename=target.name)

    return app
