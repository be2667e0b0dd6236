import io

import pytesseract
from PIL import Image

from archive.extraction.base import BaseTextExtractor
from archive.extraction.exceptions import ExtractionError


class TesseractAdapter(BaseTextExtractor):
    """Runs Tesseract OCR over a PNG or JPEG image."""

    CONFIG = "--oem 3 --psm 3"

    def __init__(self, language: str = "eng", tesseract_cmd: str = "") -> None:
        self._language = language
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def extract(self, data: bytes) -> str:
        try:
            with Image.open(io.BytesIO(data)) as image:
                text = pytesseract.image_to_string(
                    image.convert("RGB"), lang=self._language, config=self.CONFIG
                )
        except Exception as exc:
            raise ExtractionError(f"Tesseract OCR failed: {exc}") from exc
        return text.strip()
