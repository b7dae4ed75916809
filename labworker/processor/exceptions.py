class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when an upload cannot be found in the database."""


class UnsupportedStorageDiskError(ProcessorError):
    """Raised when an upload uses an unsupported storage disk type."""


class DocumentFetchError(ProcessorError):
    """Raised when the document bytes cannot be fetched from storage."""


class DocumentFetchTimeoutError(DocumentFetchError):
    """Raised when fetching the document exceeds its deadline."""


class PageCountError(ProcessorError):
    """Raised when the document has no pages to process."""


class ExtractionUnavailableError(ProcessorError):
    """Raised when the extraction model could not be reached for any unit of work."""


class JobAlreadyProcessingError(ProcessorError):
    """Raised when a processing trigger arrives for a job that is already running."""


class JobNotPendingError(ProcessorError):
    """Raised when a terminal job is triggered without being reset first."""
