from decimal import Decimal

import pytest

from app.core import config
from app.core.receipts import ocr
from app.core.receipts.parser import parse_receipt_text


def test_pdf_text_layer(make_pdf):
    text = ocr.extract_text(make_pdf("BIG STORE", "TOTAL: 1,234.56"), ".pdf")

    assert "BIG STORE" in text
    assert parse_receipt_text(text).total == Decimal("1234.56")


def test_image_goes_through_tesseract(png_bytes, fake_tesseract, monkeypatch):
    monkeypatch.setattr(config, "OCR_LANGUAGE", "eng+deu")

    text = ocr.extract_text(png_bytes, ".PNG")

    assert parse_receipt_text(text).total == Decimal("7.40")
    assert fake_tesseract == ["eng+deu"]


def test_text_files_are_decoded():
    assert ocr.extract_text("Итого: 5.00".encode("windows-1251"), ".txt") == "Итого: 5.00"
    assert ocr.extract_text(b"Total: 5.00", ".txt") == "Total: 5.00"


@pytest.mark.parametrize(
    "content, extension",
    [
        (b"not an image at all", ".png"),
        (b"not a pdf either", ".pdf"),
        (b"whatever", ".gif"),
    ],
)
def test_unreadable_files_raise(content, extension):
    with pytest.raises(ocr.ExtractionError):
        ocr.extract_text(content, extension)
