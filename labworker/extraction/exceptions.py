class ExtractionError(Exception):
    """Base exception for extraction and verification errors."""


class ResponseParseError(ExtractionError):
    """Raised when a model response is not a JSON object."""


class PromptLoadError(ExtractionError):
    """Raised when a bundled prompt or schema cannot be read."""
