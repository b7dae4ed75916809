class CompletionError(Exception):
    """Raised when a completion request fails."""


class CompletionNetworkError(CompletionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class CompletionTimeoutError(CompletionNetworkError):
    """Raised when the AI provider does not answer within the configured deadline."""


class CompletionConfigurationError(CompletionError):
    """Raised when a provider is selected without the credentials it needs."""
