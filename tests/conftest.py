from pathlib import Path
from typing import Iterable, Sequence, Tuple

import fitz
import numpy as np
import pytest

from pdfdelta.core.types import Raster
from pdfdelta.engine import PdfEngine, RenderSettings

Rect = Tuple[float, float, float, float]


def make_pdf(
    path: Path,
    pages: Iterable[Sequence[Rect]],
    size: Tuple[float, float] = (200, 200),
) -> Path:
    """Write a PDF with one page per entry, each filled black rectangle drawn on it."""

    doc = fitz.open()
    for rectangles in pages:
        page = doc.new_page(width=size[0], height=size[1])
        for rect in rectangles:
            page.draw_rect(fitz.Rect(*rect), color=(0, 0, 0), fill=(0, 0, 0))
    path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(path))
    doc.close()
    return path


def solid(height: int, width: int, value: int = 255) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


def raster(pixels: np.ndarray) -> Raster:
    return Raster(pixels.copy())


@pytest.fixture
def engine() -> PdfEngine:
    return PdfEngine(RenderSettings())


@pytest.fixture(scope="session")
def private_key():
    from cryptography.hazmat.primitives.asymmetric import rsa

    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def key_file(tmp_path, private_key):
    from cryptography.hazmat.primitives import serialization

    path = tmp_path / "key.pem"
    path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path
