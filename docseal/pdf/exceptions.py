from docseal.core.errors import DependencyError, ValidationError


class PdfInspectionError(ValidationError):
    """Raised when uploaded bytes cannot be parsed as a PDF."""


class PdfStampError(DependencyError):
    """Raised when the stamping primitive fails to draw the signature mark."""
