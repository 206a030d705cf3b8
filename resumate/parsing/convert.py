from __future__ import annotations

from io import BytesIO

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from resumate.core.config import settings
from .models import RasterImage

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _pdf_first_page_to_png(content: bytes, dpi: int) -> RasterImage:
    try:
        document = fitz.open(stream=content, filetype="pdf")
    except Exception as exc:  # noqa: BLE001 - PyMuPDF raises several error types
        raise ValueError("Unable to open this PDF file.") from exc

    try:
        if document.page_count < 1:
            raise ValueError("The PDF file has no pages.")
        zoom = dpi / 72.0
        pixmap = document[0].get_pixmap(matrix=fitz.Matrix(zoom, zoom))
        return RasterImage(
            data=pixmap.tobytes("png"),
            mime_type="image/png",
            width=pixmap.width,
            height=pixmap.height,
            source_type="pdf",
        )
    finally:
        document.close()


def _image_to_png(content: bytes) -> RasterImage:
    try:
        image = Image.open(BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Unable to read this image file.") from exc

    if image.mode not in {"RGB", "RGBA", "L"}:
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return RasterImage(
        data=buffer.getvalue(),
        mime_type="image/png",
        width=image.width,
        height=image.height,
        source_type="image",
    )


def convert_document_to_image(content: bytes, filename: str, *, dpi: int | None = None) -> RasterImage:
    """Rasterize the first page of a resume into a PNG image for the model."""
    if not content:
        raise ValueError("Uploaded file is empty.")

    ext = _extension(filename)
    if ext == "pdf" or content.startswith(b"%PDF-"):
        return _pdf_first_page_to_png(content, dpi or settings.raster_dpi)
    if ext in IMAGE_EXTENSIONS:
        return _image_to_png(content)
    raise ValueError(f"Unsupported file type '.{ext}'. Supported types: .pdf, .png, .jpg, .jpeg, .webp")


class DocumentConverter:
    def __init__(self, dpi: int | None = None):
        self._dpi = dpi

    def convert(self, content: bytes, filename: str) -> RasterImage:
        return convert_document_to_image(content, filename, dpi=self._dpi)
