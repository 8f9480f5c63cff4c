from abc import ABC, abstractmethod


class BasePdfInspector(ABC):
    """Contract for PDF inspection adapters used to vet uploads."""

    @abstractmethod
    def page_count(self, pdf_bytes: bytes) -> int:
        """Parse PDF bytes and return the number of pages.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Number of pages, always at least 1.

        Raises:
            PdfInspectionError: if the bytes are not a readable PDF or have no pages.
        """


class BasePdfStamper(ABC):
    """Contract for the stamping primitive applied at finalization."""

    @abstractmethod
    def stamp(
        self,
        pdf_bytes: bytes,
        page_number: int,
        x_percent: float,
        y_percent: float,
    ) -> bytes:
        """Draw the signature mark and return the new PDF bytes.

        Position is given as percentages of the page width and height,
        measured from the top-left corner of the page as displayed.

        Raises:
            PdfStampError: if the document cannot be stamped.
        """
