class StandardizationError(Exception):
    """Base exception for all standardization-related errors."""


class StandardsCatalogError(StandardizationError):
    """Raised when the biomarker standards catalog cannot be read."""
