import io

import pdfplumber

from docseal.logging.logger import Log
from docseal.pdf.base import BasePdfInspector
from docseal.pdf.exceptions import PdfInspectionError


class PdfPlumberInspector(BasePdfInspector):
    """Counts pages using pdfplumber."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                count = len(pdf.pages)
        except Exception as exc:
            Log.warning("pdfplumber could not parse upload", error=repr(exc))
            raise PdfInspectionError("File is not a readable PDF") from exc
        if count < 1:
            raise PdfInspectionError("PDF has no pages")
        return count
