class PdfSplitError(Exception):
    """Raised when a PDF cannot be opened, counted or split into pages."""
