import base64
import io

import fitz
from PIL import Image

from exam_agent.services.page_images import (
    PNG_DATA_URL_PREFIX,
    convert_pdf_to_images,
    image_to_data_url,
    iter_pdf_page_images,
)


def _pdf_bytes(pages: int = 2) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=200, height=100)
        page.insert_text((20, 50), f"Q{i + 1}. What is {i} + 1?")
    data = doc.tobytes()
    doc.close()
    return data


def _decode(data_url: str) -> Image.Image:
    assert data_url.startswith(PNG_DATA_URL_PREFIX)
    raw = base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):])
    return Image.open(io.BytesIO(raw))


def test_one_png_per_page_at_double_scale():
    images = convert_pdf_to_images(_pdf_bytes(3))
    assert len(images) == 3
    img = _decode(images[0])
    assert img.format == "PNG"
    assert img.size == (400, 200)


def test_pdf_can_be_read_from_path(tmp_path):
    path = tmp_path / "paper.pdf"
    path.write_bytes(_pdf_bytes(1))
    images = convert_pdf_to_images(path)
    assert len(images) == 1


def test_iteration_is_restartable():
    data = _pdf_bytes(2)
    first = list(iter_pdf_page_images(data))
    second = list(iter_pdf_page_images(data))
    assert first == second


def test_custom_scale():
    images = convert_pdf_to_images(_pdf_bytes(1), scale=1.0)
    assert _decode(images[0]).size == (200, 100)


def test_image_to_data_url_reencodes_as_png(tmp_path):
    path = tmp_path / "photo.jpg"
    Image.new("RGB", (30, 20), color=(255, 255, 255)).save(path, format="JPEG")
    url = image_to_data_url(path)
    img = _decode(url)
    assert img.format == "PNG"
    assert img.size == (30, 20)


def test_image_to_data_url_accepts_bytes_and_converts_palette_images():
    buf = io.BytesIO()
    Image.new("P", (5, 5)).save(buf, format="GIF")
    url = image_to_data_url(buf.getvalue())
    assert _decode(url).size == (5, 5)
