import pymupdf

from docseal.logging.logger import Log
from docseal.pdf.base import BasePdfInspector, BasePdfStamper
from docseal.pdf.exceptions import PdfInspectionError, PdfStampError


class PyMuPdfInspector(BasePdfInspector):
    """Counts pages using PyMuPDF."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                count = doc.page_count
        except Exception as exc:
            Log.warning("pymupdf could not parse upload", error=repr(exc))
            raise PdfInspectionError("File is not a readable PDF") from exc
        if count < 1:
            raise PdfInspectionError("PDF has no pages")
        return count


class PyMuPdfStamper(BasePdfStamper):
    """Writes a text mark onto a page using PyMuPDF."""

    def __init__(self, text: str = "Signed", font_size: float = 12.0) -> None:
        self._text = text
        self._font_size = font_size

    def stamp(
        self,
        pdf_bytes: bytes,
        page_number: int,
        x_percent: float,
        y_percent: float,
    ) -> bytes:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if not 1 <= page_number <= doc.page_count:
                    raise PdfStampError(
                        f"Page {page_number} does not exist (document has {doc.page_count})"
                    )
                page = doc[page_number - 1]
                self._draw(page, x_percent, y_percent)
                return doc.tobytes(garbage=1, deflate=True)
        except PdfStampError:
            raise
        except Exception as exc:
            Log.error("pymupdf stamping failed", page=page_number, error=repr(exc))
            raise PdfStampError("Failed to stamp document") from exc

    def _draw(self, page: pymupdf.Page, x_percent: float, y_percent: float) -> None:
        # page.rect is the displayed (rotated) page; insert_text works in
        # unrotated coordinates, hence the derotation.
        rect = page.rect
        displayed = pymupdf.Point(
            rect.x0 + rect.width * x_percent / 100,
            rect.y0 + rect.height * y_percent / 100,
        )
        point = displayed * page.derotation_matrix
        page.insert_text(
            point,
            self._text,
            fontsize=self._font_size,
            color=(0, 0, 0),
            rotate=page.rotation,
        )
