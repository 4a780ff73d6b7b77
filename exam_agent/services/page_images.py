"""
Page image helpers.

- iter_pdf_page_images(): render each PDF page to a PNG data URL (2.0x scale)
- convert_pdf_to_images(): same, collected into a list
- image_to_data_url(): normalise a single uploaded photo/scan to a PNG data URL

Data URLs are what `GeminiClient.generate(image=...)` expects; the prefix is
stripped there before upload.
"""

from __future__ import annotations

import base64
import io
import logging
from pathlib import Path
from typing import Iterator, List, Union

import fitz  # PyMuPDF
from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_RENDER_SCALE = 2.0
PNG_DATA_URL_PREFIX = "data:image/png;base64,"

PdfSource = Union[str, Path, bytes, bytearray]


def _png_data_url(png_bytes: bytes) -> str:
    return PNG_DATA_URL_PREFIX + base64.b64encode(png_bytes).decode("ascii")


def _open_pdf(source: PdfSource) -> fitz.Document:
    if isinstance(source, (bytes, bytearray)):
        return fitz.open(stream=bytes(source), filetype="pdf")
    return fitz.open(str(source))


def iter_pdf_page_images(source: PdfSource, *, scale: float = DEFAULT_RENDER_SCALE) -> Iterator[str]:
    """
    Yield one PNG data URL per page, in page order.

    The document is opened lazily and closed when the generator finishes;
    call again to restart from page 1.
    """
    matrix = fitz.Matrix(scale, scale)
    with _open_pdf(source) as doc:
        logger.debug("Rendering %d PDF page(s) at %.1fx", doc.page_count, scale)
        for page in doc:
            pix = page.get_pixmap(matrix=matrix, alpha=False)
            yield _png_data_url(pix.tobytes("png"))


def convert_pdf_to_images(source: PdfSource, *, scale: float = DEFAULT_RENDER_SCALE) -> List[str]:
    return list(iter_pdf_page_images(source, scale=scale))


def image_to_data_url(source: Union[str, Path, bytes]) -> str:
    """Re-encode any Pillow-readable image as a PNG data URL."""
    if isinstance(source, (bytes, bytearray)):
        img = Image.open(io.BytesIO(bytes(source)))
    else:
        img = Image.open(str(source))
    with img:
        if img.mode not in ("RGB", "RGBA", "L"):
            img = img.convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    return _png_data_url(buf.getvalue())
