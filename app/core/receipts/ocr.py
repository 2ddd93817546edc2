# app/core/receipts/ocr.py
"""
Get plain text out of an uploaded receipt file.

- images (.jpg/.jpeg/.png): Tesseract via pytesseract
- PDFs: the embedded text layer via pypdf (scanned PDFs without one give "")
- .txt: decoded as-is

Blocking calls, the router runs them in a worker thread.
"""

from io import BytesIO

import pytesseract
from PIL import Image
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core import config

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


class ExtractionError(Exception):
    """The file could not be read as the type it claims to be."""


def decode_text(file_bytes: bytes) -> str:
    try:
        return file_bytes.decode("utf-8")
    except UnicodeDecodeError:
        return file_bytes.decode("windows-1251")


def image_text(content: bytes) -> str:
    try:
        with Image.open(BytesIO(content)) as image:
            image.load()
            return pytesseract.image_to_string(image, lang=config.OCR_LANGUAGE)
    # UnidentifiedImageError and TesseractNotFoundError are both OSErrors
    except (OSError, pytesseract.TesseractError) as error:
        raise ExtractionError(f"OCR failed: {error}") from error


def pdf_text(content: bytes) -> str:
    try:
        reader = PdfReader(BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError) as error:
        raise ExtractionError(f"Could not read PDF: {error}") from error
    return "\n".join(pages).strip()


def extract_text(content: bytes, extension: str) -> str:
    extension = extension.lower()
    if extension == ".txt":
        return decode_text(content)
    if extension == ".pdf":
        return pdf_text(content)
    if extension in IMAGE_EXTENSIONS:
        return image_text(content)
    raise ExtractionError(f"Unsupported receipt type: {extension}")
