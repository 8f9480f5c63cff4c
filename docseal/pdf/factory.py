from docseal.config.settings import Settings
from docseal.pdf.base import BasePdfInspector, BasePdfStamper
from docseal.pdf.pdfplumber_adapter import PdfPlumberInspector
from docseal.pdf.pymupdf_adapter import PyMuPdfInspector, PyMuPdfStamper


class PdfInspectorFactory:
    """Creates the correct PDF inspector based on settings."""

    ADAPTERS: dict[str, type[BasePdfInspector]] = {
        "pdfplumber": PdfPlumberInspector,
        "pymupdf": PyMuPdfInspector,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfInspector:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()


class PdfStamperFactory:
    """Creates the stamping primitive configured with the mark's text and size."""

    @classmethod
    def create(cls, settings: Settings) -> BasePdfStamper:
        return PyMuPdfStamper(text=settings.stamp_text, font_size=settings.stamp_font_size)
