from abc import ABC, abstractmethod


class BaseCompletionClient(ABC):
    """Contract for provider-specific document completion clients."""

    @abstractmethod
    def complete(
        self,
        *,
        document_bytes: bytes,
        instruction: str,
        json_schema: dict[str, object],
        max_output_tokens: int,
        schema_name: str = "lab_report",
    ) -> str:
        """Send a PDF and an instruction to the model and return its raw text.

        An empty string means the model produced no content.

        Raises:
            CompletionConfigurationError: if credentials are missing.
            CompletionTimeoutError: if the deadline expired.
            CompletionNetworkError: on transport or non-2xx errors.
            CompletionError: if the response carries no choices.
        """
